"""Flask blueprint exposing the scan, mint, session and mirror read endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Protocol

from flask import Blueprint, request
from werkzeug.exceptions import BadRequest

from likemint.middleware import (
    current_user,
    end_session,
    issue_login_code,
    json_result,
    require_session_address,
    start_session,
)
from likemint.minting.pipeline import MintPipeline
from likemint.mirror.storage import MirrorRepository


class UserDirectory(Protocol):
    def lookup_user_by_fid(self, fid: int) -> Dict[str, Any]: ...

    def lookup_user_by_username(self, username: str) -> Dict[str, Any]: ...

    def lookup_user_by_address(self, address: str) -> Dict[str, Any]: ...

    def search_users(self, query: str, limit: int = 10) -> List[Dict[str, Any]]: ...

    def fetch_usernames(self, fids) -> Dict[int, str]: ...


def _require_arg(name: str) -> str:
    value = (request.args.get(name) or "").strip()
    if not value:
        raise BadRequest(f"Missing '{name}' parameter")
    return value


def _require_fid(name: str = "fid") -> int:
    raw = _require_arg(name)
    try:
        return int(raw)
    except ValueError:
        raise BadRequest(f"Invalid {name}: {raw}") from None


def create_blueprint(
    pipeline: MintPipeline,
    directory: UserDirectory,
    mirror: MirrorRepository,
) -> Blueprint:
    bp = Blueprint("likemint_api", __name__)

    @bp.route("/status", methods=["GET"])
    def status():
        return json_result({"status": "Running"})

    # Session ----------------------------------------------------------------

    @bp.route("/session/code", methods=["POST"])
    def session_code():
        return json_result({"code": issue_login_code()})

    @bp.route("/session/start", methods=["POST"])
    def session_start():
        payload = request.get_json(force=True, silent=True) or {}
        user = start_session(str(payload.get("address") or ""), str(payload.get("signature") or ""))
        return json_result({"user": user})

    @bp.route("/session/end", methods=["POST"])
    def session_end():
        end_session()
        return json_result(None)

    @bp.route("/session", methods=["GET"])
    def session_info():
        return json_result({"user": current_user()})

    # Scan & mint ------------------------------------------------------------

    @bp.route("/scan", methods=["GET"])
    def scan():
        address = _require_arg("address")
        return json_result(pipeline.scan_address(address))

    @bp.route("/mint", methods=["POST"])
    def mint():
        address = require_session_address()
        payload = request.get_json(force=True, silent=True) or {}
        raw_reactor = payload.get("reactorId", payload.get("likerFid"))
        try:
            reactor_id = int(raw_reactor)
        except (TypeError, ValueError):
            raise BadRequest("reactorId is required") from None
        return json_result(pipeline.mint_for(address, reactor_id))

    # Mirror reads -----------------------------------------------------------

    @bp.route("/recent-mints", methods=["GET"])
    def recent_mints():
        mints = mirror.recent_mints(limit=20)
        fids = {m["liker_fid"] for m in mints} | {m["liked_fid"] for m in mints}
        names = directory.fetch_usernames(sorted(fids)) if fids else {}
        return json_result({"recentMints": mints, "fidNames": names})

    @bp.route("/owned-by-fid", methods=["GET"])
    def owned_by_fid():
        rows = mirror.owned_by(_require_fid())
        if rows:
            names = directory.fetch_usernames([row["liker_fid"] for row in rows])
            for row in rows:
                row["name"] = names.get(row["liker_fid"])
        return json_result(rows)

    @bp.route("/owners-by-fid", methods=["GET"])
    def owners_by_fid():
        rows = mirror.owners_of(_require_fid())
        if rows:
            names = directory.fetch_usernames([row["liked_fid"] for row in rows])
            for row in rows:
                row["name"] = names.get(row["liked_fid"])
        return json_result(rows)

    # Identity passthroughs --------------------------------------------------

    @bp.route("/search-users", methods=["GET"])
    def search_users():
        return json_result(directory.search_users(_require_arg("username")))

    @bp.route("/user-by-fid", methods=["GET"])
    def user_by_fid():
        return json_result(directory.lookup_user_by_fid(_require_fid()))

    @bp.route("/user-by-username", methods=["GET"])
    def user_by_username():
        return json_result(directory.lookup_user_by_username(_require_arg("username")))

    @bp.route("/user-by-address", methods=["GET"])
    def user_by_address():
        return json_result(directory.lookup_user_by_address(_require_arg("address")))

    return bp
