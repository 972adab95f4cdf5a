import base64
import hashlib

from solders.keypair import Keypair

from cetusbot.errors import ConfigError

ED25519_FLAG = b"\x00"
# IntentScope::TransactionData, IntentVersion::V0, AppId::Sui
TX_INTENT = b"\x00\x00\x00"


def _blake2b(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()


def load_keypair(private_key: str) -> Keypair:
    """Build an ed25519 keypair from a hex secret.

    Accepts the 32-byte seed or the 64-byte seed+pubkey form, with or
    without a 0x prefix.
    """
    content = (private_key or "").strip()
    if not content:
        raise ConfigError("PRIVATE_KEY is not configured")
    if content.startswith(("0x", "0X")):
        content = content[2:]
    try:
        raw = bytes.fromhex(content)
    except ValueError:
        raise ConfigError("PRIVATE_KEY is not valid hex") from None
    if len(raw) not in (32, 64):
        raise ConfigError(f"PRIVATE_KEY must be 32 or 64 bytes, got {len(raw)}")
    return Keypair.from_seed(raw[:32])


def public_key_bytes(kp: Keypair) -> bytes:
    return bytes(kp.pubkey())


def sui_address(kp: Keypair) -> str:
    return "0x" + _blake2b(ED25519_FLAG + public_key_bytes(kp)).hex()


def sign_transaction(kp: Keypair, tx_bytes_b64: str) -> str:
    """Return the serialized Sui signature (flag || sig || pubkey), base64."""
    tx_bytes = base64.b64decode(tx_bytes_b64)
    digest = _blake2b(TX_INTENT + tx_bytes)
    sig = bytes(kp.sign_message(digest))
    return base64.b64encode(ED25519_FLAG + sig + public_key_bytes(kp)).decode()
