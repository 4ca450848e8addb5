import numpy as np
import pytest

from spectrogram import MIN_MAGNITUDE, PreconditionViolation, StreamingSpectrogram, make_window


def _run(analyzer, chunks):
    columns = []
    for chunk in chunks:
        columns.extend(analyzer.process(chunk))
    return columns


@pytest.mark.parametrize("window_size,step_size", [(1, 1), (8, 4), (16, 16), (33, 7), (64, 1)])
def test_full_frame_after_window_size_samples(window_size, step_size):
    analyzer = StreamingSpectrogram(window_size, step_size)
    analyzer.append_samples(np.random.default_rng(11).random(window_size - 1))
    assert analyzer.has_full_frame() is False

    analyzer.append_samples([0.5])
    assert analyzer.has_full_frame() is True
    column = analyzer.compute_column()
    assert len(column) == window_size // 2


def test_odd_window_drops_last_bin():
    analyzer = StreamingSpectrogram(9, 3)
    analyzer.append_samples(np.ones(9))
    assert analyzer.num_bins == 4
    assert analyzer.compute_column().shape == (4,)
    assert analyzer.frequencies(9000).shape == (4,)


def test_compute_column_is_read_only():
    analyzer = StreamingSpectrogram(32, 8)
    analyzer.append_samples(np.random.default_rng(5).random(40))

    first = analyzer.compute_column()
    second = analyzer.compute_column()

    np.testing.assert_array_equal(first, second)
    assert analyzer.buffered == 40


def test_window_of_zero_and_ones_frames():
    analyzer = StreamingSpectrogram(16, 8)

    np.testing.assert_array_equal(analyzer.apply_window(np.zeros(16)), np.zeros(16))
    np.testing.assert_array_equal(analyzer.apply_window(np.ones(16)), np.hanning(16))


def test_make_window_kinds():
    np.testing.assert_array_equal(make_window("rect", 5), np.ones(5))
    np.testing.assert_array_equal(make_window("hamming", 5), np.hamming(5))
    with pytest.raises(ValueError):
        make_window("triangle", 5)


@pytest.mark.parametrize("step_size", [3, 16, 21])
def test_chunking_does_not_change_columns(step_size):
    samples = np.random.default_rng(7).normal(size=300)

    whole = _run(StreamingSpectrogram(16, step_size), [samples])
    single = _run(StreamingSpectrogram(16, step_size), [[s] for s in samples])
    uneven = _run(StreamingSpectrogram(16, step_size), np.array_split(samples, [5, 6, 50, 123, 290]))

    assert len(whole) == len(single) == len(uneven) > 0
    for a, b, c in zip(whole, single, uneven):
        np.testing.assert_array_equal(a, b)
        np.testing.assert_array_equal(a, c)


def test_column_count_with_overlap():
    analyzer = StreamingSpectrogram(64, 32)
    columns = _run(analyzer, [np.zeros(256)])

    assert len(columns) == 1 + (256 - 64) // 32
    assert analyzer.columns_emitted == len(columns)
    assert analyzer.buffered == 256 - len(columns) * 32


def test_step_larger_than_window_skips_samples():
    analyzer = StreamingSpectrogram(4, 6, window="rect", log_scale=False)
    columns = _run(analyzer, [np.arange(5), np.arange(5, 20)])

    # Frames start at 0, 6 and 12; bin 0 is the frame sum
    assert [column[0] for column in columns] == pytest.approx([6.0, 30.0, 54.0])


def test_precondition_violation_without_full_frame():
    analyzer = StreamingSpectrogram(8, 4)
    analyzer.append_samples(np.ones(7))

    with pytest.raises(PreconditionViolation):
        analyzer.compute_column()
    with pytest.raises(PreconditionViolation):
        analyzer.advance()
    assert analyzer.buffered == 7


def test_advance_without_compute_skips_frame():
    analyzer = StreamingSpectrogram(4, 2, window="rect", log_scale=False)
    analyzer.append_samples([1, 2, 3, 4, 5, 6])

    analyzer.advance()

    np.testing.assert_array_equal(analyzer.buffer, [3, 4, 5, 6])
    assert analyzer.compute_column()[0] == pytest.approx(18.0)


def test_log_scale_floors_silence():
    analyzer = StreamingSpectrogram(8, 8)
    analyzer.append_samples(np.zeros(8))

    np.testing.assert_array_equal(analyzer.compute_column(), np.full(4, np.log10(MIN_MAGNITUDE)))


def test_sine_peak_lands_in_its_bin():
    sample_rate = 44100
    window_size = 1024
    frequency = 10 * sample_rate / window_size
    t = np.arange(window_size) / sample_rate
    analyzer = StreamingSpectrogram(window_size, window_size, window="hann")
    analyzer.append_samples(np.sin(2 * np.pi * frequency * t))

    column = analyzer.compute_column()

    assert int(np.argmax(column)) == 10
    assert analyzer.frequencies(sample_rate)[10] == pytest.approx(frequency)


def test_reset_clears_buffer_and_count():
    analyzer = StreamingSpectrogram(4, 6)
    assert len(list(analyzer.process(np.ones(5)))) == 1
    analyzer.reset()
    analyzer.append_samples([1.0])

    assert analyzer.buffered == 1
    assert analyzer.columns_emitted == 0


@pytest.mark.parametrize("window_size,step_size", [(0, 1), (4, 0), (-2, 1)])
def test_invalid_sizes(window_size, step_size):
    with pytest.raises(ValueError):
        StreamingSpectrogram(window_size, step_size)
