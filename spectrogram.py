import numpy as np
from scipy.fft import rfft, rfftfreq

# --- Параметры STFT по умолчанию ---
DEFAULT_WINDOW_SIZE = 1024
DEFAULT_STEP_SIZE = 512
DEFAULT_WINDOW = "hann"
# Нижняя граница амплитуды перед log10, чтобы тишина не давала -inf
MIN_MAGNITUDE = 1e-12

WINDOW_FUNCTIONS = {
    "hann": np.hanning,
    "hamming": np.hamming,
    "blackman": np.blackman,
    "rect": np.ones,
}


class PreconditionViolation(RuntimeError):
    """Кадр запрошен, когда в буфере меньше window_size сэмплов."""


def make_window(kind: str, size: int) -> np.ndarray:
    """Возвращает коэффициенты оконной функции заданной длины."""
    try:
        factory = WINDOW_FUNCTIONS[kind]
    except KeyError:
        known = ", ".join(sorted(WINDOW_FUNCTIONS))
        raise ValueError(f"Неизвестная оконная функция '{kind}' (доступны: {known})") from None
    return np.asarray(factory(size), dtype=np.float64)


class StreamingSpectrogram:
    """
    Скользящее окно над бесконечным потоком сэмплов.

    Сэмплы копятся в буфере; как только в нем есть window_size сэмплов,
    из начала буфера можно взять кадр, умножить на окно и получить
    столбец спектрограммы длиной window_size // 2. advance() отбрасывает
    первые step_size сэмплов: при step_size < window_size соседние кадры
    перекрываются, при step_size > window_size часть сэмплов пропускается.

    Для нечетного window_size последний положительный бин отбрасывается
    (целочисленное деление), это ожидаемое поведение.
    """
    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE, step_size: int = DEFAULT_STEP_SIZE,
                 window: str = DEFAULT_WINDOW, log_scale: bool = True):
        if window_size < 1:
            raise ValueError(f"window_size должен быть положительным, получено {window_size}")
        if step_size < 1:
            raise ValueError(f"step_size должен быть положительным, получено {step_size}")
        self.window_size = window_size
        self.step_size = step_size
        self.log_scale = log_scale
        self.window = make_window(window, window_size)
        self.num_bins = window_size // 2
        self.buffer = np.empty(0, dtype=np.float64)
        self.columns_emitted = 0
        # Сколько сэмплов еще нужно выбросить из следующих чанков (step_size > window_size)
        self._pending_skip = 0

    @property
    def buffered(self) -> int:
        return len(self.buffer)

    def append_samples(self, chunk):
        """Добавляет чанк в конец буфера."""
        samples = np.asarray(chunk, dtype=np.float64).ravel()
        if self._pending_skip:
            skipped = min(self._pending_skip, len(samples))
            samples = samples[skipped:]
            self._pending_skip -= skipped
        self.buffer = np.concatenate((self.buffer, samples))

    def has_full_frame(self) -> bool:
        return len(self.buffer) >= self.window_size

    def _require_full_frame(self, operation: str):
        if not self.has_full_frame():
            raise PreconditionViolation(
                f"{operation}: в буфере {len(self.buffer)} сэмплов, нужно {self.window_size}"
            )

    def apply_window(self, frame) -> np.ndarray:
        return np.asarray(frame, dtype=np.float64) * self.window

    def compute_column(self) -> np.ndarray:
        """
        Считает столбец спектрограммы по первым window_size сэмплам буфера.
        Буфер не меняется, повторный вызов дает тот же результат.
        """
        self._require_full_frame("compute_column")
        frame = self.apply_window(self.buffer[:self.window_size])
        # Спектр вещественного сигнала симметричен, нужна только положительная половина
        spectrum = rfft(frame)[:self.num_bins]
        magnitudes = np.abs(spectrum)
        if self.log_scale:
            return np.log10(np.maximum(magnitudes, MIN_MAGNITUDE))
        return magnitudes

    def advance(self):
        """
        Отбрасывает первые step_size сэмплов. Вызов без compute_column()
        допустим и означает пропуск кадра.
        """
        self._require_full_frame("advance")
        dropped = min(self.step_size, len(self.buffer))
        self.buffer = self.buffer[dropped:]
        self._pending_skip = self.step_size - dropped

    def process(self, chunk):
        """Добавляет чанк и выдает все готовые столбцы по порядку."""
        self.append_samples(chunk)
        while self.has_full_frame():
            column = self.compute_column()
            self.advance()
            self.columns_emitted += 1
            yield column

    def frequencies(self, sample_rate: float) -> np.ndarray:
        """Центральные частоты бинов столбца, Гц."""
        return rfftfreq(self.window_size, d=1.0 / sample_rate)[:self.num_bins]

    def reset(self):
        self.buffer = np.empty(0, dtype=np.float64)
        self._pending_skip = 0
        self.columns_emitted = 0
