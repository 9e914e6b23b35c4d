"""Pulse timing, cycle phase classification, data frame decoding, inputs, outputs and board helpers for lighthouse sensors."""

__version__ = "0.1.0"