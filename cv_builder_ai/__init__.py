"""CV builder: extract a CV record, fill its gaps through questions, finalize it."""

__version__ = "0.1.0"
