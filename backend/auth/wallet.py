import logging
import re
import secrets

from eth_account import Account
from eth_account.messages import encode_defunct

from config import settings

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_wallet_address(address: str) -> str:
    return (address or "").strip().lower()


def is_valid_wallet_address(address: str) -> bool:
    return bool(_ADDRESS_RE.match((address or "").strip()))


def generate_nonce() -> str:
    return secrets.token_hex(max(int(settings.NONCE_BYTES), 16))


def recover_signer(message: str, signature: str) -> str | None:
    """Recover the address that signed ``message`` with an EIP-191 personal signature.

    The message is signed exactly as stored, with no extra formatting. Returns None
    when the signature is malformed or recovery fails for any reason.
    """
    sig = (signature or "").strip()
    if not sig:
        return None
    try:
        return Account.recover_message(encode_defunct(text=message), signature=sig)
    except Exception as exc:
        logger.debug("Signature recovery failed: %s", type(exc).__name__)
        return None


def signature_matches(message: str, signature: str, claimed_address: str) -> bool:
    recovered = recover_signer(message, signature)
    if not recovered:
        return False
    return normalize_wallet_address(recovered) == normalize_wallet_address(claimed_address)
