import hashlib, json

SECRET_FIELDS = {"password", "confirm_password", "secret"}


def redact(payload: dict) -> dict:
    return {k: ("***" if k in SECRET_FIELDS else v) for k, v in payload.items()}


def payload_hash(payload: dict) -> str:
    s = json.dumps(redact(payload), sort_keys=True, default=str)
    return hashlib.sha256(s.encode()).hexdigest()
