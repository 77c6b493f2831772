"""
Ledger mirror: duplicates directory and record events onto the EHR smart
contract. The database is authoritative; every call here runs after the
primary write has been committed, and any failure is logged and dropped.
"""

import asyncio
import logging
import threading
from typing import Optional
from fastapi import Request
from web3 import Web3
from ehr_portal.config import Settings

logger = logging.getLogger(__name__)

RECEIPT_TIMEOUT_SECONDS = 120

CONTRACT_ABI = [
    {
        "name": "addPatient",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "patient", "type": "address"}],
        "outputs": [],
    },
    {
        "name": "addDoctor",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "doctor", "type": "address"}],
        "outputs": [],
    },
    {
        "name": "uploadRecord",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "fileHash", "type": "string"},
            {"name": "fileName", "type": "string"},
            {"name": "date", "type": "string"},
        ],
        "outputs": [],
    },
]


class LedgerMirror:
    """Signs and sends contract transactions with the server's wallet."""

    def __init__(self, settings: Settings):
        self.rpc_url = settings.rpc_url
        self.private_key = settings.private_key
        self.contract_address = settings.contract_address
        self._w3: Optional[Web3] = None
        self._contract = None
        self._account = None
        # one nonce sequence per signer
        self._send_lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return bool(self.rpc_url and self.private_key and self.contract_address)

    def _connect(self) -> None:
        if self._contract is not None:
            return
        w3 = Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": 30}))
        if not w3.is_connected():
            raise ConnectionError(f"Failed to connect to blockchain node at {self.rpc_url}")
        self._account = w3.eth.account.from_key(self.private_key)
        self._contract = w3.eth.contract(
            address=Web3.to_checksum_address(self.contract_address),
            abi=CONTRACT_ABI,
        )
        self._w3 = w3
        logger.info("Ledger contract connected at %s (chain %s)", self.contract_address, w3.eth.chain_id)

    def _send(self, function_name: str, *args) -> str:
        with self._send_lock:
            self._connect()
            w3 = self._w3
            function_call = getattr(self._contract.functions, function_name)(*args)
            transaction = function_call.build_transaction({
                "from": self._account.address,
                "nonce": w3.eth.get_transaction_count(self._account.address),
                "gasPrice": w3.eth.gas_price,
            })
            signed = self._account.sign_transaction(transaction)
            tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
            receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=RECEIPT_TIMEOUT_SECONDS)
            if receipt.get("status") != 1:
                raise RuntimeError(f"transaction {w3.to_hex(tx_hash)} reverted")
            return w3.to_hex(tx_hash)

    async def mirror(self, function_name: str, *args) -> Optional[str]:
        """Run one contract call off the event loop. Never raises."""
        if not self.enabled:
            logger.debug("Ledger mirror disabled, skipping %s", function_name)
            return None
        try:
            tx_hash = await asyncio.to_thread(self._send, function_name, *args)
        except Exception as e:
            logger.warning("Ledger %s failed: %s", function_name, e)
            return None
        logger.info("Ledger %s mined in %s", function_name, tx_hash)
        return tx_hash

    async def _mirror_address(self, function_name: str, wallet_address: str) -> Optional[str]:
        if not self.enabled:
            return await self.mirror(function_name, wallet_address)
        try:
            address = Web3.to_checksum_address(wallet_address)
        except ValueError as e:
            logger.warning("Ledger %s skipped, bad wallet %r: %s", function_name, wallet_address, e)
            return None
        return await self.mirror(function_name, address)

    async def add_patient(self, wallet_address: str) -> Optional[str]:
        return await self._mirror_address("addPatient", wallet_address)

    async def add_doctor(self, wallet_address: str) -> Optional[str]:
        return await self._mirror_address("addDoctor", wallet_address)

    async def upload_record(self, file_hash: str, file_name: str, date: str) -> Optional[str]:
        return await self.mirror("uploadRecord", file_hash, file_name, date)


def get_ledger(request: Request) -> LedgerMirror:
    return request.app.state.ledger
