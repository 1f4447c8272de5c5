"""edgefeed – relevance-classified, EdgeScore-ranked market news and calendar.

Sources: FMP + EODHD news, FMP + Finnhub economic calendar.
Entry point: ``python -m edgefeed.run``
"""

__version__ = "0.1.0"
