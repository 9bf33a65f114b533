"""Package metadata for shipline."""

__app_name__ = "shipline"
__version__ = "0.3.0"
__description__ = "Sequential stage pipelines for build and deploy jobs, with failure policy and cleanup."
__author__ = "Shipline Developers"
__license_type__ = "MIT"

__all__ = [
    "__app_name__",
    "__author__",
    "__description__",
    "__license_type__",
    "__version__",
]
