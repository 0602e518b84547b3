"""Wallet-signature session helpers.

A client asks for a one-time code, signs the login message with its wallet
and posts the signature back; the recovered signer must equal the claimed
address before the address is stored in the Flask session.
"""

from __future__ import annotations

import secrets
from typing import Any, Dict

from eth_account import Account
from eth_account.messages import encode_defunct
from flask import session

from likemint.minting.errors import InvalidSession

SESSION_USER_KEY = "user"
SESSION_CODE_KEY = "code"
LOGIN_MESSAGE = "Authenticating on Farcoin.xyz\n\nCode: {code}"


def issue_login_code() -> str:
    code = str(1_000_000_000 + secrets.randbelow(999_000_000_000))
    session[SESSION_CODE_KEY] = code
    return code


def recover_signer(code: str, signature: str) -> str:
    message = encode_defunct(text=LOGIN_MESSAGE.format(code=code))
    try:
        return Account.recover_message(message, signature=signature)
    except Exception as exc:  # noqa: BLE001 - malformed signatures raise various errors
        raise InvalidSession("Invalid signature") from exc


def start_session(address: str, signature: str) -> Dict[str, Any]:
    code = session.get(SESSION_CODE_KEY)
    if not code:
        raise InvalidSession("Invalid code")
    if not address or not signature:
        raise InvalidSession("Address and signature are required")
    signer = recover_signer(code, signature)
    if signer.lower() != address.lower():
        raise InvalidSession("Invalid signature")
    session[SESSION_USER_KEY] = {"address": signer}
    session.pop(SESSION_CODE_KEY, None)
    return session[SESSION_USER_KEY]


def end_session() -> None:
    session.pop(SESSION_CODE_KEY, None)
    session.pop(SESSION_USER_KEY, None)


def current_user() -> Dict[str, Any]:
    return session.get(SESSION_USER_KEY) or {}


def require_session_address() -> str:
    address = current_user().get("address")
    if not address:
        raise InvalidSession("Not signed in")
    return address
