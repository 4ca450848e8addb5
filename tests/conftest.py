import os
import sys

import matplotlib
import numpy as np
import pytest
from scipy.io import wavfile

matplotlib.use("Agg")

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

SETTINGS_ENV_VARS = ("WINDOW_SIZE", "STEP_SIZE", "WINDOW_FUNCTION", "LOG_SCALE", "CHUNK_SIZE", "WEBHOOK_URL")


@pytest.fixture(autouse=True)
def clean_settings_env(monkeypatch):
    # setenv first so teardown also removes whatever load_dotenv() put there
    for name in SETTINGS_ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


@pytest.fixture
def sine_wav(tmp_path):
    """1 s, 8 kHz, 440 Hz mono 16-bit WAV."""
    sample_rate = 8000
    t = np.arange(sample_rate) / sample_rate
    data = (16000 * np.sin(2 * np.pi * 440 * t)).astype(np.int16)
    path = tmp_path / "beep.wav"
    wavfile.write(str(path), sample_rate, data)
    return path, sample_rate, data
