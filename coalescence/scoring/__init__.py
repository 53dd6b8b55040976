"""Scoring module: Rapidity histograms."""

from coalescence.scoring.histograms import RapidityHistograms

__all__ = ["RapidityHistograms"]
