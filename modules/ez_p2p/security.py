from __future__ import annotations

import hashlib
import json
from typing import Any, Dict

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import load_pem_private_key


SUPPORTED_ALGORITHM = "ecdsa-p256-sha256"
SIGNED_ENVELOPE_FIELDS = ("version", "network", "type", "msg_id", "timestamp", "sender_id", "payload")


def _to_bytes(pem: str | bytes) -> bytes:
    if isinstance(pem, bytes):
        return pem
    return pem.encode("utf-8")


def _load_private_key(private_key_pem: str | bytes) -> ec.EllipticCurvePrivateKey:
    private_key = load_pem_private_key(_to_bytes(private_key_pem), password=None)
    if not isinstance(private_key, ec.EllipticCurvePrivateKey):
        raise ValueError("identity_private_key_must_be_ec")
    return private_key


def generate_identity_key() -> str:
    """Fresh P-256 channel identity key as unencrypted PKCS8 PEM."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return pem.decode("utf-8")


def public_key_bytes(private_key_pem: str | bytes) -> bytes:
    """Compressed SEC1 point (33 bytes) for the identity key."""
    public_key = _load_private_key(private_key_pem).public_key()
    return public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.CompressedPoint,
    )


def fingerprint_public_key(public_key: bytes) -> str:
    return hashlib.sha256(bytes(public_key)).hexdigest()


def canonical_envelope_payload(envelope: Dict[str, Any]) -> bytes:
    signed = {name: envelope.get(name, "") for name in SIGNED_ENVELOPE_FIELDS}
    return json.dumps(signed, sort_keys=True, separators=(",", ":"), ensure_ascii=True).encode("utf-8")


def sign_envelope(envelope: Dict[str, Any], private_key_pem: str | bytes) -> str:
    private_key = _load_private_key(private_key_pem)
    digest = hashlib.sha256(canonical_envelope_payload(envelope)).digest()
    signature = private_key.sign(digest, ec.ECDSA(hashes.SHA256()))
    return signature.hex()


def build_auth(envelope: Dict[str, Any], private_key_pem: str | bytes) -> Dict[str, str]:
    return {
        "algorithm": SUPPORTED_ALGORITHM,
        "public_key": public_key_bytes(private_key_pem).hex(),
        "signature": sign_envelope(envelope, private_key_pem),
    }


def verify_envelope_signature(envelope: Dict[str, Any], signature_hex: str, public_key: bytes) -> bool:
    try:
        key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), bytes(public_key))
        digest = hashlib.sha256(canonical_envelope_payload(envelope)).digest()
        key.verify(bytes.fromhex(signature_hex), digest, ec.ECDSA(hashes.SHA256()))
        return True
    except (InvalidSignature, ValueError, TypeError):
        return False
