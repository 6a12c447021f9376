"""Frequency-domain volume analysis of the live input stream."""

import logging

import numpy as np
from scipy.signal import windows

logger = logging.getLogger(__name__)


class VolumeAnalyzer:
    """Reduces the most recent input samples to a volume level in [0, 255].

    Mirrors a Web Audio ``AnalyserNode``: the last ``fft_size`` samples are
    Blackman-windowed, transformed, smoothed over time, converted to
    decibels and mapped from ``[min_decibels, max_decibels]`` onto bytes.
    The volume is the arithmetic mean of all frequency bins.
    """

    def __init__(
        self,
        fft_size: int = 256,
        smoothing_time_constant: float = 0.8,
        min_decibels: float = -100.0,
        max_decibels: float = -30.0,
    ):
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {fft_size}")
        if min_decibels >= max_decibels:
            raise ValueError("min_decibels must be lower than max_decibels")

        self.fft_size = fft_size
        self.smoothing_time_constant = smoothing_time_constant
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels

        self._window = windows.blackman(fft_size, sym=False)
        self._samples = np.zeros(fft_size, dtype=np.float32)
        self._smoothed = np.zeros(self.frequency_bin_count, dtype=np.float64)

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2

    def push_pcm(self, pcm: bytes) -> None:
        """Feed 16-bit little-endian PCM from the device."""
        usable = len(pcm) - len(pcm) % 2
        if usable <= 0:
            return
        samples = np.frombuffer(pcm[:usable], dtype=np.int16).astype(np.float32) / 32768.0
        self.push(samples)

    def push(self, samples: np.ndarray) -> None:
        """Feed float samples in [-1, 1]; only the newest ``fft_size`` are kept."""
        if len(samples) >= self.fft_size:
            self._samples[:] = samples[-self.fft_size:]
        else:
            self._samples = np.roll(self._samples, -len(samples))
            self._samples[-len(samples):] = samples

    def get_byte_frequency_data(self) -> np.ndarray:
        """Take a snapshot of the spectrum as ``frequency_bin_count`` bytes."""
        spectrum = np.fft.rfft(self._samples * self._window)[:self.frequency_bin_count]
        magnitude = np.abs(spectrum) / self.fft_size

        tau = self.smoothing_time_constant
        self._smoothed = tau * self._smoothed + (1.0 - tau) * magnitude

        with np.errstate(divide="ignore"):
            decibels = 20.0 * np.log10(self._smoothed)
        scale = 255.0 / (self.max_decibels - self.min_decibels)
        scaled = np.floor(scale * (decibels - self.min_decibels))
        return np.clip(np.nan_to_num(scaled, neginf=0.0), 0, 255).astype(np.uint8)

    def get_volume(self) -> float:
        """Mean of all frequency bins of a fresh snapshot."""
        frequency_data = self.get_byte_frequency_data()
        return float(np.sum(frequency_data, dtype=np.int64)) / self.frequency_bin_count

    def reset(self) -> None:
        self._samples[:] = 0.0
        self._smoothed[:] = 0.0
