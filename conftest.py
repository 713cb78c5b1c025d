import matplotlib

matplotlib.use("Agg")

import numpy as np  # noqa: E402
import pytest  # noqa: E402

from Epochipy.core.config import AnalysisConfig  # noqa: E402
from Epochipy.core.data_model import Recording  # noqa: E402


def pytest_ignore_collect(collection_path, config):
    """
    Hook to ignore files/directories during collection.
    Explicitly ignore .DS_Store to prevent PermissionError on macOS.
    """
    if collection_path.name == '.DS_Store':
        return True
    if collection_path.name in ['.git', '.idea', '__pycache__']:
        return True
    return None


# --- Synthetic recording ---
# Alternating 'standard' (1) and 'deviant' (2) triggers, one per second.
# Every event evokes one cycle of a 2 Hz sine; deviants add a Gaussian bump
# peaking 250 ms after onset. Cz carries a DC offset that baseline
# correction must remove.

SAMPLE_RATE = 100.0  # Hz
EVENT_SPACING = 100  # samples
FIRST_EVENT = 50     # samples
PULSE_WIDTH = 5      # samples
DC_OFFSET = 50.0
EFFECT_AMPLITUDE = 4.0
EVENT_ID = {"standard": 1, "deviant": 2}
CHANNEL_NAMES = ["Cz", "Pz", "STI 014"]


def shared_waveform(t):
    t = np.asarray(t, dtype=float)
    return np.where((t >= 0) & (t <= 0.5), 3.0 * np.sin(2 * np.pi * 2.0 * t), 0.0)


def deviant_bump(t):
    t = np.asarray(t, dtype=float)
    return np.where(t >= 0, EFFECT_AMPLITUDE * np.exp(-((t - 0.25) / 0.08) ** 2), 0.0)


def build_recording(n_events=40, seed=0, noise=1.0, extra_events=()):
    """Recording with Cz, Pz and a 'STI 014' trigger channel."""
    rng = np.random.default_rng(seed)
    codes = np.tile([1, 2], n_events // 2 + 1)[:n_events]
    onsets = FIRST_EVENT + EVENT_SPACING * np.arange(n_events)
    n_samples = int(onsets[-1] + EVENT_SPACING)
    t = np.arange(n_samples) / SAMPLE_RATE

    stim = np.zeros(n_samples)
    cz = DC_OFFSET + noise * rng.standard_normal(n_samples)
    pz = -0.5 * DC_OFFSET + noise * rng.standard_normal(n_samples)
    labels = {code: label for label, code in EVENT_ID.items()}
    annotations = []
    for onset, code in zip(onsets, codes):
        stim[onset:onset + PULSE_WIDTH] = code
        window = slice(onset, min(onset + EVENT_SPACING, n_samples))
        rel = t[window] - t[onset]
        wave = shared_waveform(rel) + (deviant_bump(rel) if code == 2 else 0.0)
        cz[window] += wave
        pz[window] += 0.5 * wave
        annotations.append((onset / SAMPLE_RATE, labels[int(code)]))
    for sample, code in extra_events:
        stim[sample:sample + PULSE_WIDTH] = code

    return Recording.from_arrays(
        np.vstack([cz, pz, stim]), CHANNEL_NAMES, SAMPLE_RATE, units="uV", annotations=annotations
    )


def make_config(**overrides):
    params = dict(
        stim_channel="STI 014",
        event_id=dict(EVENT_ID),
        tmin=-0.2,
        tmax=0.5,
        baseline=(None, 0.0),
        seed=42,
    )
    params.update(overrides)
    return AnalysisConfig(**params)


@pytest.fixture
def synthetic_recording():
    """40 alternating events on a 100 Hz, three-channel recording."""
    return build_recording()


@pytest.fixture
def recording_factory():
    """The recording builder, for tests that need custom events or noise."""
    return build_recording


@pytest.fixture
def analysis_config():
    """A validated config matching the synthetic recording."""
    return make_config().validate()


@pytest.fixture
def config_factory():
    return make_config


@pytest.fixture(scope="session")
def fitted_outcome():
    """One full analysis run on the synthetic recording, shared by the model tests."""
    from Epochipy.core.pipeline import run_analysis
    return run_analysis(make_config(), recording=build_recording())


@pytest.fixture(scope="session")
def fitted_model(fitted_outcome):
    return fitted_outcome.model


# --- Fixtures for test_neo_adapter.py ---

@pytest.fixture
def neo_adapter_instance():
    """Create a NeoAdapter instance for testing."""
    from Epochipy.infrastructure.file_readers import NeoAdapter
    return NeoAdapter()


def write_neo_pickle(recording, path, t_start=2.0):
    """Writes ``recording`` as a neo Block (signals plus marker events) through PickleIO."""
    import neo
    import quantities as pq
    from neo.io import PickleIO

    data = recording.get_data().T
    names = np.array(recording.channel_names)
    signal = neo.AnalogSignal(data, units="uV", sampling_rate=SAMPLE_RATE * pq.Hz, t_start=t_start * pq.s,
                              array_annotations={"channel_names": names})
    onsets = np.array([onset for onset, _ in recording.annotations]) + t_start
    labels = np.array([label for _, label in recording.annotations])
    event = neo.Event(times=onsets * pq.s, labels=labels, name="markers")

    segment = neo.Segment(name="continuous")
    segment.analogsignals.append(signal)
    segment.events.append(event)
    block = neo.Block(name="synthetic")
    block.segments.append(segment)

    PickleIO(filename=str(path)).write_block(block)
    return path


@pytest.fixture
def sample_pickle_path(tmp_path):
    """A short synthetic recording (10 events) starting at t = 2 s, as a .pkl file."""
    return write_neo_pickle(build_recording(n_events=10), tmp_path / "synthetic.pkl")
