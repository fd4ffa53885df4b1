"""
Algorand payment adapter.

Payments for a game carry a lease derived from the game id: the network
rejects a second payment from the same sender with the same lease while the
first one's validity window is open, so a retried settlement cannot pay twice.
"""

import hashlib
import logging
import secrets
import time

from algosdk import account, encoding, mnemonic, transaction
from algosdk.v2client import algod

import config
from errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


def lease_for(idempotency_key: str) -> bytes:
    return hashlib.sha256(idempotency_key.encode()).digest()


def synthetic_transaction_id() -> str:
    return f"MOCK_TXN_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


class AlgorandLedger:

    def __init__(self, sender_mnemonic: str = None,
                 node_server: str = config.ALGORAND_NODE_SERVER,
                 node_token: str = config.ALGORAND_NODE_TOKEN,
                 confirmation_rounds: int = config.ALGORAND_CONFIRMATION_ROUNDS,
                 client: algod.AlgodClient = None):
        self.sender_mnemonic = sender_mnemonic
        self.confirmation_rounds = confirmation_rounds
        self.client = client
        if self.client is None and sender_mnemonic:
            self.client = algod.AlgodClient(node_token, node_server)

    @property
    def mock_mode(self) -> bool:
        return not self.sender_mnemonic

    def pay(self, to_address: str, amount: int, memo: str, idempotency_key: str = None) -> str:
        """Send amount microAlgos to to_address; returns the transaction id."""
        if self.mock_mode:
            txid = synthetic_transaction_id()
            logger.warning(f"Algorand sender mnemonic not configured, using mock transaction {txid}")
            return txid
        if not encoding.is_valid_address(to_address):
            raise UpstreamUnavailable(f"Not an Algorand address: {to_address}")

        try:
            private_key = mnemonic.to_private_key(self.sender_mnemonic)
            sender = account.address_from_private_key(private_key)
            params = self.client.suggested_params()
            txn = transaction.PaymentTxn(
                sender=sender,
                sp=params,
                receiver=to_address,
                amt=amount,
                note=memo.encode(),
                lease=lease_for(idempotency_key) if idempotency_key else None,
            )
            signed = txn.sign(private_key)
            txid = self.client.send_transaction(signed)
            transaction.wait_for_confirmation(self.client, txid, self.confirmation_rounds)
        except Exception as exc:
            raise UpstreamUnavailable(f"Algorand payment failed: {exc}") from exc

        logger.info(f"Algorand reward sent: {amount} microAlgos to {to_address}, TxID: {txid}")
        return txid
