import numpy as np
from scipy.io import wavfile

DEFAULT_CHUNK_SIZE = 4096


class FileOpenError(OSError):
    """Файл не найден, не читается или не является WAV."""


class WavSource:
    """
    Источник сэмплов из .wav файла. Файл отображается в память (mmap),
    сэмплы отдаются чанками и переводятся во float только по мере чтения.
    """
    def __init__(self, file_path: str):
        self.file_path = file_path
        try:
            self.sample_rate, data = wavfile.read(file_path, mmap=True)
        except FileNotFoundError:
            raise FileOpenError(f"Файл не найден по пути '{file_path}'") from None
        except (OSError, ValueError, EOFError) as e:
            raise FileOpenError(f"Ошибка при чтении файла '{file_path}': {e}") from e

        # Если звук в стерео, берем только один канал
        if data.ndim > 1:
            data = data[:, 0]
        self._data = data

    @property
    def num_samples(self) -> int:
        return len(self._data)

    def chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        for start in range(0, len(self._data), chunk_size):
            yield np.asarray(self._data[start:start + chunk_size], dtype=np.float64)


class SineSource:
    """Синтетический синус; значения зависят только от номера сэмпла, а не от разбиения на чанки."""
    def __init__(self, frequency: float, sample_rate: int = 44100, duration_s: float = 1.0,
                 amplitude: float = 16000.0):
        self.frequency = frequency
        self.sample_rate = sample_rate
        self.amplitude = amplitude
        self.file_path = f"sine:{frequency:g}Hz"
        self._num_samples = int(sample_rate * duration_s)

    @property
    def num_samples(self) -> int:
        return self._num_samples

    def chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        for start in range(0, self._num_samples, chunk_size):
            stop = min(start + chunk_size, self._num_samples)
            t = np.arange(start, stop) / self.sample_rate
            yield self.amplitude * np.sin(2 * np.pi * self.frequency * t)
