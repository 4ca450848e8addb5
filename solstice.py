import argparse
import os
import sys

import numpy as np
import requests
from dotenv import load_dotenv

from analyze_wav import plot_spectrogram, plot_spectrum
from peak_finder import EmptyInputError, EnergyMeter, find_peak
from sources import DEFAULT_CHUNK_SIZE, FileOpenError, SineSource, WavSource
from spectrogram import (DEFAULT_STEP_SIZE, DEFAULT_WINDOW, DEFAULT_WINDOW_SIZE,
                         WINDOW_FUNCTIONS, StreamingSpectrogram)

MODES = ("spectrogram", "peak", "peaks", "energy")

# --- Настройки из окружения (.env) и их значения по умолчанию ---
SETTINGS_ENV = {
    "window_size": ("WINDOW_SIZE", DEFAULT_WINDOW_SIZE),
    "step_size": ("STEP_SIZE", DEFAULT_STEP_SIZE),
    "window": ("WINDOW_FUNCTION", DEFAULT_WINDOW),
    "log_scale": ("LOG_SCALE", True),
    "chunk_size": ("CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
    "webhook_url": ("WEBHOOK_URL", None),
}


class ConfigError(ValueError):
    """Некорректная настройка в .env или в аргументах."""


def debug_print(enabled, message: str):
    if enabled:
        print(message, file=sys.stderr)


def _env_int(env_var: str, default: int) -> int:
    raw = os.getenv(env_var)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{env_var} должно быть целым числом, получено '{raw}'") from None


def _env_bool(env_var: str, default: bool) -> bool:
    raw = os.getenv(env_var)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("true", "1")


def load_settings(config_path=None) -> dict:
    """
    Загружает .env (или указанный через --config файл) и собирает настройки
    анализа. Переменные, уже заданные в окружении, не перезаписываются.
    """
    if config_path:
        if not os.path.exists(config_path):
            raise ConfigError(f"Файл конфигурации не найден: {config_path}")
        load_dotenv(config_path)
    else:
        load_dotenv()

    settings = {}
    for key, (env_var, default) in SETTINGS_ENV.items():
        if isinstance(default, bool):
            settings[key] = _env_bool(env_var, default)
        elif isinstance(default, int):
            settings[key] = _env_int(env_var, default)
        else:
            settings[key] = os.getenv(env_var) or default
    return settings


def apply_overrides(settings: dict, args) -> dict:
    """Аргументы командной строки имеют приоритет над .env."""
    settings = dict(settings)
    for key in ("window_size", "step_size", "window", "chunk_size"):
        value = getattr(args, key)
        if value is not None:
            settings[key] = value
    if args.linear:
        settings["log_scale"] = False
    if args.webhook:
        settings["webhook_url"] = args.webhook

    for key in ("window_size", "step_size", "chunk_size"):
        if settings[key] < 1:
            raise ConfigError(f"{key} должен быть положительным, получено {settings[key]}")
    if settings["window"] not in WINDOW_FUNCTIONS:
        known = ", ".join(sorted(WINDOW_FUNCTIONS))
        raise ConfigError(f"Неизвестная оконная функция '{settings['window']}' (доступны: {known})")
    return settings


def format_column(column) -> str:
    return " ".join(f"{value:.4f}" for value in column)


def make_analyzer(settings: dict) -> StreamingSpectrogram:
    return StreamingSpectrogram(settings["window_size"], settings["step_size"],
                                window=settings["window"], log_scale=settings["log_scale"])


def run_spectrogram(source, settings: dict, plot: bool = False, debug=False) -> dict:
    """Печатает по одной строке на каждый столбец спектрограммы."""
    analyzer = make_analyzer(settings)
    collected = []
    debug_print(debug, f"Обработка {source.num_samples} сэмплов, окно {analyzer.window_size}, "
                       f"шаг {analyzer.step_size}...")
    for chunk in source.chunks(settings["chunk_size"]):
        for column in analyzer.process(chunk):
            print(format_column(column))
            if plot:
                collected.append(column)
    debug_print(debug, f"...Готово, столбцов: {analyzer.columns_emitted}")

    if plot:
        plot_spectrogram(collected, source.sample_rate, analyzer.window_size, analyzer.step_size,
                         source.file_path, log_scale=analyzer.log_scale)
    return {"columns": analyzer.columns_emitted}


def run_peaks(source, settings: dict, truncate: bool = False, plot: bool = False, debug=False) -> dict:
    """Печатает пиковую частоту каждого столбца."""
    analyzer = make_analyzer(settings)
    peaks = []
    collected = []
    for chunk in source.chunks(settings["chunk_size"]):
        for column in analyzer.process(chunk):
            # Целая часть берется от линейной амплитуды, а не от log10
            magnitudes = 10 ** column if truncate and analyzer.log_scale else column
            peak = find_peak(magnitudes, source.sample_rate, analyzer.window_size, truncate=truncate)
            if peak is None:
                continue
            print(peak)
            peaks.append(peak)
            if plot:
                collected.append(column)
    debug_print(debug, f"...Готово, столбцов: {analyzer.columns_emitted}")

    if plot:
        plot_spectrogram(collected, source.sample_rate, analyzer.window_size, analyzer.step_size,
                         source.file_path, log_scale=analyzer.log_scale)
    return {"peaks_hz": peaks}


def find_spectral_peak(source, chunk_size: int = DEFAULT_CHUNK_SIZE, truncate: bool = False, debug=False):
    """
    Пиковая частота всего сигнала. Это тот же потоковый анализатор с одним
    кадром на весь сигнал: прямоугольное окно, линейная амплитуда.
    Возвращает (частота или None, анализатор, столбец).
    """
    num_samples = source.num_samples
    if num_samples == 0:
        raise EmptyInputError(f"В '{source.file_path}' нет ни одного сэмпла")

    analyzer = StreamingSpectrogram(num_samples, num_samples, window="rect", log_scale=False)
    debug_print(debug, f"Сбор {num_samples} сэмплов...")
    # Кадр равен всему сигналу: чанки склеиваются один раз, а не на каждом добавлении
    signal = np.concatenate(list(source.chunks(chunk_size)))
    debug_print(debug, "Выполнение FFT...")
    column = next(analyzer.process(signal))

    debug_print(debug, "Поиск максимума спектра...")
    peak = find_peak(column, source.sample_rate, num_samples, truncate=truncate)
    debug_print(debug, "...Готово")
    return peak, analyzer, column


def run_peak(source, settings: dict, truncate: bool = False, plot: bool = False, debug=False) -> dict:
    peak, analyzer, column = find_spectral_peak(source, settings["chunk_size"], truncate, debug)
    if peak is None:
        print("Нет результата: сигнал слишком короткий для поиска пика")
        return {"peak_hz": None}
    print(peak)

    if plot:
        plot_spectrum(analyzer.frequencies(source.sample_rate), column, source.file_path,
                      source.sample_rate)
    return {"peak_hz": peak}


def run_energy(source, settings: dict, debug=False) -> dict:
    meter = EnergyMeter()
    for chunk in source.chunks(settings["chunk_size"]):
        meter.add(chunk)
    debug_print(debug, f"Обработано сэмплов: {meter.num_samples}")
    print(meter.energy)
    return {"energy": meter.energy}


class ResultWebhook:
    """Отправляет итог анализа POST-запросом на заданный URL веб-хука."""
    def __init__(self, webhook_url: str, timeout: float = 5):
        self.webhook_url = webhook_url
        self.timeout = timeout

    def send(self, payload: dict) -> bool:
        print(f"Отправка веб-хука на {self.webhook_url}...", file=sys.stderr)
        try:
            response = requests.post(self.webhook_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            print(f"Ошибка при отправке веб-хука: {e}", file=sys.stderr)
            return False
        if 200 <= response.status_code < 300:
            print("Веб-хук успешно отправлен", file=sys.stderr)
            return True
        print(f"Ошибка веб-хука: Статус {response.status_code}, Ответ: {response.text}", file=sys.stderr)
        return False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="solstice", description="Анализ аудио: спектрограмма и пиковая частота")
    parser.add_argument("input", nargs="?", help="Путь к .wav файлу")
    parser.add_argument("-c", "--config", metavar="FILE", help="Файл настроек в формате .env")
    parser.add_argument("-d", "--debug", action="count", default=0, help="Печатать ход обработки в stderr")
    parser.add_argument("--mode", choices=MODES, default="spectrogram", help="Режим вывода")
    parser.add_argument("--window-size", type=int, help="Длина окна STFT в сэмплах")
    parser.add_argument("--step-size", type=int, help="Шаг окна в сэмплах")
    parser.add_argument("--window", help="Оконная функция: " + ", ".join(sorted(WINDOW_FUNCTIONS)))
    parser.add_argument("--linear", action="store_true", help="Линейная амплитуда вместо log10")
    parser.add_argument("--chunk-size", type=int, help="Размер чанка при чтении файла")
    parser.add_argument("--legacy-peak", action="store_true",
                        help="Сравнивать амплитуды после отбрасывания дробной части")
    parser.add_argument("--sine", type=float, metavar="FREQ", help="Синтетический синус вместо файла, Гц")
    parser.add_argument("--duration", type=float, default=1.0, help="Длительность синуса, с")
    parser.add_argument("--sample-rate", type=int, default=44100, help="Частота дискретизации синуса")
    parser.add_argument("--plot", action="store_true", help="Показать график после анализа")
    parser.add_argument("--webhook", metavar="URL", help="Отправить итог на URL веб-хука")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.input is None and args.sine is None:
        print("Пожалуйста, укажите аудиофайл")
        return 0

    try:
        settings = apply_overrides(load_settings(args.config), args)
    except ConfigError as e:
        print(f"Ошибка конфигурации: {e}", file=sys.stderr)
        return 1

    try:
        if args.sine is not None:
            source = SineSource(args.sine, args.sample_rate, args.duration)
        else:
            source = WavSource(args.input)
        debug_print(args.debug, f"Источник '{source.file_path}', частота {source.sample_rate} Hz")

        if args.mode == "spectrogram":
            result = run_spectrogram(source, settings, args.plot, args.debug)
        elif args.mode == "peaks":
            result = run_peaks(source, settings, args.legacy_peak, args.plot, args.debug)
        elif args.mode == "peak":
            result = run_peak(source, settings, args.legacy_peak, args.plot, args.debug)
        else:
            result = run_energy(source, settings, args.debug)
    except FileOpenError as e:
        print(f"Ошибка: {e}", file=sys.stderr)
        return 1
    except EmptyInputError as e:
        print(f"Нет результата: {e}")
        return 0

    if settings["webhook_url"]:
        payload = {"source": source.file_path, "mode": args.mode, "sample_rate": source.sample_rate}
        payload.update(result)
        ResultWebhook(settings["webhook_url"]).send(payload)
    return 0


if __name__ == '__main__':
    """
    Использование:
    - Спектрограмма файла (по строке на столбец):
      python solstice.py <путь_к_файлу.wav>

    - Пиковая частота всего файла:
      python solstice.py --mode peak <путь_к_файлу.wav>

    - Проверка на синтетическом сигнале:
      python solstice.py --sine 440 --mode peaks
    """
    sys.exit(main())
