"""runbench: time repeated, randomly interleaved runs of commands."""

__version__ = "0.1.0"
