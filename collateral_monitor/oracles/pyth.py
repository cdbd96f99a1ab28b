"""Pyth Network price feeds, polled from the Hermes HTTP API."""
from __future__ import annotations

import logging
import ssl
from decimal import Decimal

import aiohttp
import certifi

from ..config import PythConfig
from ..interfaces.price_feed import FeedError, PriceFeed
from ..interfaces.rate_source import RateSourceError

logger = logging.getLogger(__name__)


def _normalize_id(feed_id: str) -> str:
    return feed_id.lower().removeprefix("0x")


class PythOracle:
    """Cache of the latest Hermes quote per configured symbol.

    ``fetch_quotes`` is the only network call; feeds built with ``feed()``
    answer synchronously from the cache so a refresh never waits on I/O.
    """

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.request_timeout = config.request_timeout
        self.price_feeds = dict(config.feeds)
        self._quotes: dict[str, tuple[Decimal, float]] = {}

    def quote(self, symbol: str) -> tuple[Decimal, float] | None:
        return self._quotes.get(symbol)

    def feed(self, symbol: str) -> PythFeed:
        return PythFeed(self, symbol)

    async def fetch_quotes(self) -> dict[str, tuple[Decimal, float]]:
        """Fetch the latest quotes for all configured feeds.

        Returns the quotes received in this call. On HTTP or network failure
        nothing is returned and previously cached quotes are kept, so their
        timestamps keep ageing toward the staleness timeout.
        """
        fetched: dict[str, tuple[Decimal, float]] = {}

        id_to_symbols: dict[str, list[str]] = {}
        for symbol, feed_id in self.price_feeds.items():
            id_to_symbols.setdefault(_normalize_id(feed_id), []).append(symbol)
        if not id_to_symbols:
            return fetched

        params = [("ids[]", fid) for fid in id_to_symbols]
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    self.hermes_url,
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=self.request_timeout),
                ) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        return fetched
                    data = await response.json()
        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)
            return fetched

        for item in data.get("parsed", []):
            symbols = id_to_symbols.get(_normalize_id(item.get("id", "")))
            if not symbols:
                continue
            price_data = item.get("price", {})
            try:
                value = Decimal(int(price_data["price"])).scaleb(int(price_data["expo"]))
                publish_time = float(price_data["publish_time"])
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Malformed Pyth quote for %s: %s", symbols, e)
                continue
            for symbol in symbols:
                fetched[symbol] = (value, publish_time)

        self._quotes.update(fetched)
        for symbol, (value, publish_time) in sorted(fetched.items()):
            logger.debug("  %s: %s @ %.0f", symbol, value, publish_time)
        logger.info("Fetched %d quotes from Pyth Network", len(fetched))
        return fetched


class PythFeed:
    """``PriceFeed`` view of one symbol in a ``PythOracle`` cache."""

    def __init__(self, oracle: PythOracle, symbol: str) -> None:
        self._oracle = oracle
        self._symbol = symbol

    @property
    def name(self) -> str:
        return f"pyth:{self._symbol}"

    def latest_answer(self) -> tuple[Decimal, float]:
        quote = self._oracle.quote(self._symbol)
        if quote is None:
            raise FeedError(f"No Pyth quote for {self._symbol}")
        return quote


class FeedRateSource:
    """Read an exchange rate published as a price feed (e.g. a redemption rate)."""

    def __init__(self, feed: PriceFeed) -> None:
        self._feed = feed

    def current_rate(self) -> Decimal:
        try:
            value, _ = self._feed.latest_answer()
        except Exception as e:
            raise RateSourceError(f"{self._feed.name}: {e}") from e
        if not value.is_finite() or value <= 0:
            raise RateSourceError(f"{self._feed.name} answered unusable rate {value}")
        return value
