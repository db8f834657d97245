"""zettelhub — note graph index for Markdown notebooks."""

__version__ = "0.3.0"
