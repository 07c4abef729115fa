"""pricewatch: crawls shop listings through public proxies."""

__version__ = "0.1.0"
