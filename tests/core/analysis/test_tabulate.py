import numpy as np
import pandas as pd
import pytest

from Epochipy.core.analysis.tabulate import (
    ObservationRow, iter_observation_rows, rounded_times, select_channel, to_observation_table,
)
from Epochipy.core.data_model import EpochSet
from Epochipy.shared.constants import OBSERVATION_COLUMNS
from Epochipy.shared.error_handling import AnalysisError


@pytest.fixture
def small_epochs():
    data = np.arange(2 * 2 * 3, dtype=float).reshape(2, 2, 3)
    return EpochSet(
        data=data,
        times=[-0.1, 0.0, 0.1 + 1e-12],
        channel_names=["Cz", "Pz"],
        conditions=["deviant", "standard"],
        event_samples=[10, 20],
        event_codes=[2, 1],
        event_id={"standard": 1, "deviant": 2},
        sampling_rate=10.0,
    )


def test_table_columns_and_length(small_epochs):
    table = to_observation_table(small_epochs)
    assert list(table.columns) == OBSERVATION_COLUMNS
    assert len(table) == 2 * 2 * 3


def test_table_row_order_and_values(small_epochs):
    table = to_observation_table(small_epochs)
    first = table.iloc[0]
    assert (first["condition"], first["epoch"], first["channel"]) == ("deviant", 0, "Cz")
    assert first["time"] == pytest.approx(-0.1)
    np.testing.assert_array_equal(table["amplitude"].to_numpy(), small_epochs.data.reshape(-1))
    assert table.iloc[3]["channel"] == "Pz"
    assert table.iloc[6]["epoch"] == 1


def test_condition_is_ordered_categorical(small_epochs):
    table = to_observation_table(small_epochs)
    assert isinstance(table["condition"].dtype, pd.CategoricalDtype)
    assert list(table["condition"].cat.categories) == ["standard", "deviant"]
    assert table["condition"].cat.ordered


def test_times_are_rounded(small_epochs):
    table = to_observation_table(small_epochs)
    assert 0.1 in set(table["time"])
    np.testing.assert_array_equal(rounded_times(np.array([0.1 + 1e-12, -0.0])), [0.1, 0.0])


def test_iter_rows_matches_table(small_epochs):
    rows = list(iter_observation_rows(small_epochs))
    table = to_observation_table(small_epochs)
    assert len(rows) == len(table)
    assert rows[4] == ObservationRow(0, "deviant", 0.0, "Pz", 4.0)
    assert [r.amplitude for r in rows] == table["amplitude"].tolist()


def test_empty_epochs_give_empty_table():
    epochs = EpochSet(np.empty((0, 1, 3)), [0, 1, 2], ["Cz"], [], [], [], {"a": 1}, 10.0)
    table = to_observation_table(epochs)
    assert table.empty
    assert list(table.columns) == OBSERVATION_COLUMNS


def test_select_channel(small_epochs):
    table = to_observation_table(small_epochs)
    cz = select_channel(table, "Cz")
    assert len(cz) == 6
    assert set(cz["channel"]) == {"Cz"}
    assert list(cz.index) == list(range(6))
    with pytest.raises(AnalysisError):
        select_channel(table, "Oz")
