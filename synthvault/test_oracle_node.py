"""
Test the HTTP price feeder with the network mocked out.
"""
import unittest
from unittest.mock import MagicMock, patch

import requests

from synthvault.config import OracleFeedConfig
from synthvault.core import UPDATE_PRICE
from synthvault.crypto import generate_key_pair
from synthvault.oracle_node import OracleNode


def feed_response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


class TestOracleNode(unittest.TestCase):
    def setUp(self):
        self.priv_key, _ = generate_key_pair()
        self.node = OracleNode(self.priv_key, OracleFeedConfig(), chain_id=7)

    @patch('synthvault.oracle_node.requests.get')
    def test_price_is_scaled_to_cents(self, mock_get):
        mock_get.return_value = feed_response({'bitcoin': {'usd': 64123.45}})
        self.assertEqual(self.node._fetch_usd_price(), 6412345)

        _, kwargs = mock_get.call_args
        self.assertEqual(kwargs['params'], {'ids': 'bitcoin', 'vs_currencies': 'usd'})
        self.assertEqual(kwargs['timeout'], 5.0)

    @patch('synthvault.oracle_node.requests.get')
    def test_network_error_yields_none(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("down")
        self.assertIsNone(self.node._fetch_usd_price())
        self.assertIsNone(self.node.price_update(nonce=0))

    @patch('synthvault.oracle_node.requests.get')
    def test_http_error_yields_none(self, mock_get):
        response = feed_response({})
        response.raise_for_status.side_effect = requests.HTTPError("429")
        mock_get.return_value = response
        self.assertIsNone(self.node._fetch_usd_price())

    @patch('synthvault.oracle_node.requests.get')
    def test_unexpected_payload_yields_none(self, mock_get):
        mock_get.return_value = feed_response({'ethereum': {'usd': 1}})
        self.assertIsNone(self.node._fetch_usd_price())

    @patch('synthvault.oracle_node.requests.get')
    def test_zero_price_is_not_submitted(self, mock_get):
        mock_get.return_value = feed_response({'bitcoin': {'usd': 0.001}})
        self.assertIsNone(self.node.price_update(nonce=0))

    @patch('synthvault.oracle_node.requests.get')
    def test_price_update_builds_signed_transaction(self, mock_get):
        mock_get.return_value = feed_response({'bitcoin': {'usd': "100.5"}})
        tx = self.node.price_update(nonce=4)

        self.assertEqual(tx.tx_type, UPDATE_PRICE)
        self.assertEqual(tx.data, {'price': 10050})
        self.assertEqual(tx.nonce, 4)
        self.assertEqual(tx.chain_id, 7)
        self.assertEqual(tx.sender_address, self.node.address)
        self.assertEqual(tx.validate_basic(), (True, ""))


if __name__ == '__main__':
    unittest.main()
