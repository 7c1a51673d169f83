"""objcstyle - style-conformance checker for Objective-C sources."""

__version__ = "0.1.0"
