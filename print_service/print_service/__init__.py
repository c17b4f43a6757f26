"""Receipt print service: prints restaurant orders from the Firestore print queue."""

__version__ = "0.1.0"
