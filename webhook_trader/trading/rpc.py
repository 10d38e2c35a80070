from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any

import aiohttp
from solders.address_lookup_table_account import AddressLookupTable, AddressLookupTableAccount
from solders.pubkey import Pubkey

from webhook_trader.common import log_event

from .types import to_int


class RpcMethodError(RuntimeError):
    def __init__(
        self,
        *,
        method: str,
        message: str,
        status: int | None = None,
        code: int | None = None,
        data: Any = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.status = status
        self.code = code
        self.data = data


def _error_payload_to_message(payload: Any) -> str:
    if isinstance(payload, dict):
        message = payload.get("message")
        if message:
            return str(message)
    return str(payload)


def is_account_not_found(error: RpcMethodError) -> bool:
    return "could not find account" in str(error).lower()


class SolanaRpcClient:
    """Minimal JSON-RPC transport for the handful of methods the agent needs."""

    def __init__(
        self,
        *,
        logger: logging.Logger,
        rpc_url: str,
        timeout_seconds: float = 15.0,
    ) -> None:
        self._logger = logger
        self._rpc_url = rpc_url
        self._timeout_seconds = timeout_seconds
        self._session: aiohttp.ClientSession | None = None
        self._request_id = 0

    async def connect(self) -> None:
        if not self._rpc_url:
            raise ValueError("SOLANA_ENDPOINT must not be empty.")
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self._timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def call(self, method: str, params: list[Any] | None = None) -> Any:
        if self._session is None:
            await self.connect()
        if self._session is None:
            raise RuntimeError("RPC HTTP session is not initialized.")

        self._request_id += 1
        payload: dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        try:
            async with self._session.post(self._rpc_url, json=payload) as response:
                status = response.status
                body = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as error:
            raise RpcMethodError(method=method, message=f"RPC network error for {method}: {error!r}") from error
        except ValueError as error:
            raise RpcMethodError(method=method, message=f"RPC returned a non-JSON body for {method}: {error}") from error

        if status >= 400:
            raise RpcMethodError(
                method=method,
                status=status,
                data=body,
                message=f"RPC call failed: method={method} status={status} body={body}",
            )

        if not isinstance(body, dict):
            raise RpcMethodError(method=method, status=status, message=f"Invalid RPC response for {method}: {body}")

        error_payload = body.get("error")
        if error_payload:
            code = to_int(error_payload.get("code"), 0) if isinstance(error_payload, dict) else None
            raise RpcMethodError(
                method=method,
                status=status,
                code=code or None,
                data=error_payload,
                message=f"RPC error for {method}: {_error_payload_to_message(error_payload)}",
            )

        return body.get("result")

    @staticmethod
    def _value(method: str, result: Any) -> Any:
        if not isinstance(result, dict) or "value" not in result:
            raise RpcMethodError(method=method, message=f"Unexpected {method} response: {result}")
        return result["value"]

    async def get_balance(self, pubkey: Pubkey, *, commitment: str = "confirmed") -> int:
        result = await self.call("getBalance", [str(pubkey), {"commitment": commitment}])
        return to_int(self._value("getBalance", result), 0)

    async def get_token_account_balance(
        self,
        pubkey: Pubkey,
        *,
        commitment: str = "confirmed",
    ) -> tuple[int, int]:
        result = await self.call("getTokenAccountBalance", [str(pubkey), {"commitment": commitment}])
        value = self._value("getTokenAccountBalance", result)
        if not isinstance(value, dict):
            raise RpcMethodError(
                method="getTokenAccountBalance",
                message=f"Unexpected getTokenAccountBalance payload: {result}",
            )
        return to_int(value.get("amount"), 0), to_int(value.get("decimals"), 0)

    async def get_account_data(self, pubkey: Pubkey, *, commitment: str = "confirmed") -> bytes | None:
        result = await self.call(
            "getAccountInfo",
            [str(pubkey), {"encoding": "base64", "commitment": commitment}],
        )
        value = self._value("getAccountInfo", result)
        if value is None:
            return None

        data = value.get("data") if isinstance(value, dict) else None
        if not isinstance(data, list) or not data:
            raise RpcMethodError(method="getAccountInfo", message=f"Unexpected account data for {pubkey}: {value}")
        return base64.b64decode(str(data[0]))

    async def get_latest_blockhash(self, *, commitment: str = "finalized") -> tuple[str, int]:
        result = await self.call("getLatestBlockhash", [{"commitment": commitment}])
        value = self._value("getLatestBlockhash", result)
        blockhash = str((value or {}).get("blockhash") or "").strip()
        if not blockhash:
            raise RpcMethodError(method="getLatestBlockhash", message=f"Missing blockhash in RPC response: {result}")
        return blockhash, to_int(value.get("lastValidBlockHeight"), 0)

    async def get_block_height(self, *, commitment: str = "confirmed") -> int:
        result = await self.call("getBlockHeight", [{"commitment": commitment}])
        return to_int(result, 0)

    async def get_address_lookup_tables(self, addresses: list[str]) -> list[AddressLookupTableAccount]:
        accounts: list[AddressLookupTableAccount] = []
        for address in addresses:
            key = Pubkey.from_string(address)
            raw = await self.get_account_data(key)
            if raw is None:
                log_event(
                    self._logger,
                    level="warning",
                    event="lookup_table_missing",
                    message="Address lookup table account was not found; skipping it",
                    lookup_table=address,
                )
                continue
            table = AddressLookupTable.deserialize(raw)
            accounts.append(AddressLookupTableAccount(key, list(table.addresses)))
        return accounts

    async def send_raw_transaction(self, raw_transaction: bytes, *, skip_preflight: bool = True) -> str:
        encoded = base64.b64encode(raw_transaction).decode("ascii")
        result = await self.call(
            "sendTransaction",
            [encoded, {"encoding": "base64", "skipPreflight": skip_preflight}],
        )
        if not isinstance(result, str) or not result:
            raise RpcMethodError(method="sendTransaction", message=f"Unexpected sendTransaction response: {result}")
        return result

    async def get_signature_status(self, signature: str) -> dict[str, Any] | None:
        result = await self.call("getSignatureStatuses", [[signature], {"searchTransactionHistory": False}])
        value = self._value("getSignatureStatuses", result)
        if not isinstance(value, list) or not value:
            return None
        status = value[0]
        return status if isinstance(status, dict) else None
