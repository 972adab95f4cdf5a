import logging
from typing import Any, Dict, List, Optional

import requests
from solders.keypair import Keypair

from cetusbot.errors import RpcError, TransactionFailedError
from cetusbot.sui.keys import sign_transaction, sui_address
from cetusbot.types import CoinAsset

logger = logging.getLogger(__name__)

PAGE_LIMIT = 50


class SuiClient:
    """Thin Sui JSON-RPC client bound to one signing wallet."""

    def __init__(self, rpc_url: str, keypair: Keypair, timeout: float = 30.0):
        self.rpc_url = rpc_url
        self.keypair = keypair
        self.timeout = timeout
        self.session = requests.Session()
        self._address = sui_address(keypair)
        self._req_id = 0

    def _call(self, method: str, params: list) -> Any:
        self._req_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._req_id,
            "method": method,
            "params": params,
        }
        try:
            r = self.session.post(self.rpc_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise RpcError(f"{method}: {e}") from e
        if r.status_code != 200:
            raise RpcError(f"{method}: HTTP {r.status_code} {r.text}")
        try:
            data = r.json()
        except ValueError as e:
            raise RpcError(f"{method}: malformed response") from e
        if data.get("error"):
            err = data["error"]
            raise RpcError(f"{method}: {err.get('message', err)}", {"error": err})
        return data.get("result")

    def get_address(self) -> str:
        return self._address

    def get_owned_assets(
        self, address: str, coin_type: Optional[str] = None
    ) -> List[CoinAsset]:
        """All coin objects owned by address, following pagination."""
        assets: List[CoinAsset] = []
        cursor = None
        while True:
            if coin_type:
                page = self._call("suix_getCoins", [address, coin_type, cursor, PAGE_LIMIT])
            else:
                page = self._call("suix_getAllCoins", [address, cursor, PAGE_LIMIT])
            if not isinstance(page, dict):
                raise RpcError("coin page: malformed response", {"response": page})
            try:
                for c in page.get("data") or []:
                    assets.append(
                        CoinAsset(
                            coin_type=c["coinType"],
                            coin_object_id=c["coinObjectId"],
                            balance=int(c["balance"]),
                        )
                    )
            except (KeyError, TypeError, ValueError) as e:
                raise RpcError(f"coin page: malformed coin entry: {e}", {"response": page}) from e
            if not page.get("hasNextPage"):
                return assets
            cursor = page.get("nextCursor")

    def get_object(self, object_id: str) -> Dict[str, Any]:
        res = self._call(
            "sui_getObject", [object_id, {"showContent": True, "showType": True}]
        )
        if not res or res.get("error") or not res.get("data"):
            raise RpcError(f"object {object_id} unavailable", {"response": res})
        return res["data"]

    def get_coin_metadata(self, coin_type: str) -> Optional[Dict[str, Any]]:
        return self._call("suix_getCoinMetadata", [coin_type])

    def query_events(
        self, event_type: str, cursor: Optional[dict] = None, limit: int = PAGE_LIMIT
    ) -> Dict[str, Any]:
        return self._call(
            "suix_queryEvents", [{"MoveEventType": event_type}, cursor, limit, False]
        )

    def unsafe_move_call(
        self,
        package: str,
        module: str,
        function: str,
        type_arguments: List[str],
        arguments: List[Any],
        gas_budget: int,
        gas: Optional[str] = None,
    ) -> str:
        """Have the node build a single Move call; returns base64 tx bytes."""
        res = self._call(
            "unsafe_moveCall",
            [
                self._address,
                package,
                module,
                function,
                type_arguments,
                arguments,
                gas,
                str(gas_budget),
            ],
        )
        if not res or "txBytes" not in res:
            raise RpcError("unsafe_moveCall: malformed response", {"response": res})
        return res["txBytes"]

    def pay_sui(
        self,
        input_coins: List[str],
        recipients: List[str],
        amounts: List[int],
        gas_budget: int,
    ) -> str:
        """SUI transfer built by the node; the first input coin pays gas."""
        res = self._call(
            "unsafe_paySui",
            [
                self._address,
                input_coins,
                recipients,
                [str(a) for a in amounts],
                str(gas_budget),
            ],
        )
        if not isinstance(res, dict) or "txBytes" not in res:
            raise RpcError("unsafe_paySui: malformed response", {"response": res})
        return res["txBytes"]

    def sign_and_submit(self, tx_bytes: str) -> Dict[str, Any]:
        signature = sign_transaction(self.keypair, tx_bytes)
        res = self._call(
            "sui_executeTransactionBlock",
            [
                tx_bytes,
                [signature],
                {"showEffects": True, "showEvents": True},
                "WaitForLocalExecution",
            ],
        )
        _raise_for_status(res)
        logger.debug(f"[sui] executed {res.get('digest')}")
        return res

    def dry_run(self, tx_bytes: str) -> Dict[str, Any]:
        res = self._call("sui_dryRunTransactionBlock", [tx_bytes])
        _raise_for_status(res)
        return res


def _raise_for_status(res: Optional[Dict[str, Any]]) -> None:
    if not res:
        raise RpcError("empty transaction response")
    status = (res.get("effects") or {}).get("status") or {}
    if status.get("status") != "success":
        raise TransactionFailedError(
            f"transaction failed: {status.get('error', 'unknown')}",
            digest=res.get("digest") or (res.get("effects") or {}).get("transactionDigest"),
            details={"status": status},
        )
