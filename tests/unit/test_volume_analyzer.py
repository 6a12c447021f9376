"""Unit tests for VolumeAnalyzer."""

import numpy as np
import pytest

from micrecorder.audio.analyzer import VolumeAnalyzer


@pytest.mark.unit
class TestVolumeAnalyzer:
    """Test cases for VolumeAnalyzer."""

    def test_defaults(self):
        analyzer = VolumeAnalyzer()

        assert analyzer.fft_size == 256
        assert analyzer.frequency_bin_count == 128
        data = analyzer.get_byte_frequency_data()
        assert data.dtype == np.uint8
        assert len(data) == 128

    @pytest.mark.parametrize("fft_size", [0, 16, 100, 255])
    def test_invalid_fft_size(self, fft_size):
        with pytest.raises(ValueError):
            VolumeAnalyzer(fft_size=fft_size)

    def test_invalid_decibel_range(self):
        with pytest.raises(ValueError):
            VolumeAnalyzer(min_decibels=-30, max_decibels=-30)

    def test_silence_is_zero(self, audio_test_data):
        analyzer = VolumeAnalyzer()
        analyzer.push_pcm(audio_test_data("silence", 0.1))

        assert analyzer.get_volume() == 0.0

    def test_noise_is_loud(self, audio_test_data):
        analyzer = VolumeAnalyzer()
        analyzer.push_pcm(audio_test_data("noise", 0.1))

        volume = analyzer.get_volume()
        assert 30 < volume <= 255

    def test_volume_is_mean_of_bins(self, audio_test_data):
        analyzer = VolumeAnalyzer(smoothing_time_constant=0.0)
        analyzer.push_pcm(audio_test_data("noise", 0.1))

        expected = float(np.mean(analyzer.get_byte_frequency_data()))
        assert analyzer.get_volume() == pytest.approx(expected)

    def test_sine_peaks_at_its_bin(self):
        analyzer = VolumeAnalyzer(smoothing_time_constant=0.0)
        # Quiet enough that neighbouring bins do not saturate at 255
        t = np.arange(1600) / 16000
        analyzer.push(0.05 * np.sin(2 * np.pi * 1000 * t))

        data = analyzer.get_byte_frequency_data()
        # 1 kHz at 16 kHz with 256-point FFT lands in bin 16
        assert int(np.argmax(data)) == 16

    def test_smoothing_decays_after_sound_stops(self, audio_test_data):
        analyzer = VolumeAnalyzer()
        analyzer.push_pcm(audio_test_data("noise", 0.1))
        loud = analyzer.get_volume()

        analyzer.push_pcm(audio_test_data("silence", 0.1))
        volumes = [analyzer.get_volume() for _ in range(60)]

        assert volumes[0] < loud
        assert all(later <= earlier for earlier, later in zip(volumes, volumes[1:]))
        assert volumes[-1] == 0.0

    def test_short_pushes_keep_latest_samples(self):
        analyzer = VolumeAnalyzer(fft_size=32)
        analyzer.push(np.ones(20, dtype=np.float32))
        analyzer.push(np.full(20, 0.5, dtype=np.float32))

        window = analyzer._samples
        assert np.all(window[-20:] == 0.5)
        assert np.all(window[:12] == 1.0)

    def test_odd_byte_pcm_ignores_trailing_byte(self):
        analyzer = VolumeAnalyzer()
        analyzer.push_pcm(b"\x01")
        assert analyzer.get_volume() == 0.0

        analyzer.push_pcm(np.array([1000, -1000, 1000], dtype=np.int16).tobytes() + b"\x7f")
        assert analyzer._samples[-1] == pytest.approx(1000 / 32768.0)

    def test_reset(self, audio_test_data):
        analyzer = VolumeAnalyzer()
        analyzer.push_pcm(audio_test_data("noise", 0.1))
        assert analyzer.get_volume() > 0

        analyzer.reset()
        assert analyzer.get_volume() == 0.0
