"""Metadata for seo_parity."""

__all__ = [
    "__title__",
    "__version__",
    "__description__",
    "__requires_python__",
]

__title__ = "seo_parity"
__version__ = "0.1.0"
__description__ = (
    "Compare SEO-relevant page content of a production and a development site "
    "during a platform migration."
)
__requires_python__ = ">=3.9"
