# oracle_node.py
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

import requests

from synthvault.config import OracleFeedConfig
from synthvault.constants import PRICE_SCALE
from synthvault.core import Transaction, UPDATE_PRICE
from synthvault.crypto import serialize_public_key, public_key_to_address

logger = logging.getLogger(__name__)


class OracleNode:
    """Polls an HTTP price feed and signs UPDATE_PRICE transactions."""

    def __init__(self, priv_key, config: OracleFeedConfig = None, chain_id: int = 1):
        self.priv_key = priv_key
        self.pub_key = serialize_public_key(priv_key.public_key())
        self.config = config or OracleFeedConfig()
        self.chain_id = chain_id

    @property
    def address(self) -> bytes:
        return public_key_to_address(self.pub_key)

    def _fetch_usd_price(self) -> Optional[int]:
        """Returns the feed price scaled by PRICE_SCALE, or None if unavailable."""
        params = {'ids': self.config.asset_id, 'vs_currencies': self.config.vs_currency}
        try:
            r = requests.get(self.config.api_url, params=params, timeout=self.config.timeout)
            r.raise_for_status()
            raw = r.json()[self.config.asset_id][self.config.vs_currency]
            # Decimal avoids float rounding when scaling to cents
            return int(Decimal(str(raw)) * PRICE_SCALE)
        except requests.RequestException as e:
            logger.warning(f"Price feed request failed: {e}")
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            logger.warning(f"Unexpected price feed payload: {e}")
        return None

    def create_price_update(self, price: int, nonce: int) -> Transaction:
        """Creates a signed UPDATE_PRICE transaction."""
        tx = Transaction(
            sender_public_key=self.pub_key,
            tx_type=UPDATE_PRICE,
            data={'price': price},
            nonce=nonce,
            chain_id=self.chain_id,
        )
        tx.sign(self.priv_key)
        return tx

    def price_update(self, nonce: int) -> Optional[Transaction]:
        price = self._fetch_usd_price()
        if price is None:
            return None
        if price <= 0:
            logger.warning(f"Feed returned a non-positive price: {price}")
            return None

        logger.info(f"Fetched {self.config.asset_id}/{self.config.vs_currency} price {price}")
        return self.create_price_update(price, nonce)
