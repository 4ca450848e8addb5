import numpy as np
import matplotlib.pyplot as plt


def plot_spectrum(frequencies, magnitudes, title: str, sample_rate: float):
    """
    Строит спектр одного кадра (или всего сигнала) и показывает окно.
    """
    print("\nСейчас откроется окно с графиком спектра. Закройте его, чтобы завершить программу.")

    plt.figure(figsize=(12, 6))
    plt.plot(frequencies, magnitudes)
    plt.title(f"Спектр частот '{title}'")
    plt.xlabel("Частота (Гц)")
    plt.ylabel("Амплитуда")
    plt.grid(True)
    plt.xlim(0, sample_rate / 2)
    plt.show()


def plot_spectrogram(columns, sample_rate: float, window_size: int, step_size: int,
                     title: str, log_scale: bool = True):
    """
    Строит спектрограмму из списка столбцов: по оси X время начала кадра,
    по оси Y частота бина.
    """
    if not columns:
        print("Нет ни одного кадра, спектрограмма не построена.")
        return

    image = np.column_stack(columns)
    times = np.arange(len(columns)) * step_size / sample_rate
    frequencies = np.arange(image.shape[0]) * sample_rate / window_size

    print("\nСейчас откроется окно со спектрограммой. Закройте его, чтобы завершить программу.")

    plt.figure(figsize=(16, 8))
    plt.pcolormesh(times, frequencies, image, shading="auto", cmap="inferno")
    plt.colorbar(label="log10 амплитуды" if log_scale else "Амплитуда")
    plt.title(f"Спектрограмма '{title}'")
    plt.xlabel("Время (с)")
    plt.ylabel("Частота (Гц)")
    plt.ylim(0, sample_rate / 2)
    plt.show()
