"""ZK Insurance Verifier: interactive TCP front end for the proof pipeline."""

__version__ = "1.0.0"
