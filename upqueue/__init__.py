"""upqueue: direct-to-S3 upload tickets and an ingestion queue."""

__version__ = "0.1.0"
