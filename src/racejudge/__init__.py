"""racejudge: drives external AI programs as turn-based racing contestants."""

__version__ = "0.1.0"
