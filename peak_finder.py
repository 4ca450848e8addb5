from typing import Optional

import numpy as np

U32_MAX = 2 ** 32 - 1


class EmptyInputError(ValueError):
    """Поиск пика по сигналу без сэмплов."""


def find_peak(spectrum, sample_rate: float, num_samples: int,
              take_half: bool = False, truncate: bool = False) -> Optional[float]:
    """
    Возвращает частоту (Гц) бина с максимальной амплитудой или None,
    если спектр пуст.

    take_half  - спектр полной длины, берется только первая половина.
    truncate   - старое сравнение по целой части амплитуды (0..2**32-1): дробная часть
                 теряется, близкие пики сливаются.
    При равенстве выигрывает первый (самый низкий) бин.
    """
    values = np.asarray(spectrum)
    # Сырой выход FFT сравниваем по модулю, готовые столбцы (в т.ч. log10) как есть
    if np.iscomplexobj(values):
        magnitudes = np.abs(values).ravel()
    else:
        magnitudes = values.astype(np.float64).ravel()
    if take_half:
        magnitudes = magnitudes[:len(magnitudes) // 2]
    if magnitudes.size == 0:
        return None
    if num_samples <= 0:
        raise EmptyInputError("Число сэмплов должно быть положительным")

    if truncate:
        # Как приведение к u32: отрицательные в 0, сверху насыщение на 2**32 - 1
        keys = np.clip(np.floor(magnitudes), 0, U32_MAX)
    else:
        keys = magnitudes
    # argmax возвращает первое вхождение максимума
    peak_bin = int(np.argmax(keys))
    return peak_bin * (sample_rate / num_samples)


def signal_energy(samples) -> float:
    """Энергия сигнала: сумма квадратов сэмплов."""
    values = np.asarray(samples, dtype=np.float64)
    return float(np.sum(values * values))


class EnergyMeter:
    """Накапливает энергию сигнала по чанкам."""
    def __init__(self):
        self.energy = 0.0
        self.num_samples = 0

    def add(self, chunk):
        values = np.asarray(chunk, dtype=np.float64).ravel()
        self.energy += signal_energy(values)
        self.num_samples += values.size
