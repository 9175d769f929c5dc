import hashlib
import hmac
import time
from urllib.parse import parse_qsl, urlencode

from cardvault.core.config import settings

MAX_AUTH_AGE_SECONDS = 24 * 60 * 60


def _secret_key() -> bytes:
    return hashlib.sha256(settings.AUTH_SHARED_SECRET.encode()).digest()


def _data_check_string(data: dict) -> str:
    return "\n".join(f"{k}={v}" for k, v in sorted(data.items()))


def sign_identity(data: dict) -> str:
    """Build a signed query string the way the identity provider does."""
    fields = {k: str(v) for k, v in data.items() if v is not None}
    fields.setdefault("auth_date", str(int(time.time())))
    fields["hash"] = hmac.new(
        _secret_key(),
        _data_check_string(fields).encode(),
        hashlib.sha256
    ).hexdigest()
    return urlencode(fields)


def verify_identity(init_data: str):
    """
    Verify a signed identity payload from the upstream provider.

    Returns (is_valid, fields). The payload is a query string holding the
    user's claims (id, email, first_name, ...) plus an auth_date and an
    HMAC-SHA256 hash over the sorted "key=value" lines.
    """
    try:
        data_dict = dict(parse_qsl(init_data, strict_parsing=True))
    except ValueError:
        return False, {}

    hash_from_provider = data_dict.pop("hash", None)
    if not hash_from_provider or "id" not in data_dict:
        return False, data_dict

    calculated_hash = hmac.new(
        _secret_key(),
        _data_check_string(data_dict).encode(),
        hashlib.sha256
    ).hexdigest()

    if not hmac.compare_digest(calculated_hash, hash_from_provider):
        return False, data_dict

    try:
        auth_date = int(data_dict.get("auth_date", "0"))
    except ValueError:
        return False, data_dict
    if time.time() - auth_date > MAX_AUTH_AGE_SECONDS:
        return False, data_dict

    return True, data_dict
