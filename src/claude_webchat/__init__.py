"""Chat with claude.ai from the terminal or a local web page using a browser session cookie."""

__version__ = "0.1.0"
