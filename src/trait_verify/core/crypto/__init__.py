# SPDX-License-Identifier: MPL-2.0
"""Development key signer.

Scripts and tests need something that signs statements without a browser
wallet. :class:`DevKeyPair` wraps a secp256k1 Ethereum account and exposes the
two things a wallet provides: a checksummed address and a ``sign_message``
call producing an EIP-191 ``personal_sign`` signature, which is what the
verification authority checks.
"""

from __future__ import annotations

import base64
import os
from dataclasses import dataclass, field

from cryptography.hazmat.primitives.asymmetric import ec
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount

SIGNATURE_LENGTH = 65


def _b64u(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64u_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


@dataclass
class DevKeyPair:
    """A secp256k1 key pair standing in for a wallet."""

    account: LocalAccount
    kid: str = field(default_factory=lambda: f"dev-{os.urandom(8).hex()}")

    @classmethod
    def generate(cls, kid: str | None = None) -> DevKeyPair:
        """Generate a new key pair.

        Args:
            kid: Optional key identifier. If omitted, a random identifier is
                generated.
        """
        return cls(account=Account.create(), kid=kid or f"dev-{os.urandom(8).hex()}")

    @classmethod
    def from_private_key(cls, private_key: str, kid: str | None = None) -> DevKeyPair:
        """Load a key pair from a hex private key (``0x`` prefix optional).

        Raises:
            ValueError: if the key is not a valid secp256k1 private key.
        """
        return cls(account=Account.from_key(private_key), kid=kid or f"dev-{os.urandom(8).hex()}")

    def private_bytes(self) -> bytes:
        return bytes(self.account.key)

    def public_numbers(self) -> ec.EllipticCurvePublicNumbers:
        """Public point of the key, used for the JWK ``x``/``y`` members."""
        private_value = int.from_bytes(self.private_bytes(), "big")
        private_key = ec.derive_private_key(private_value, ec.SECP256K1())
        return private_key.public_key().public_numbers()

    @property
    def address(self) -> str:
        """EIP-55 checksummed Ethereum address."""
        return self.account.address

    def sign_message(self, message: str) -> str:
        """Sign ``message`` with EIP-191 and return the signature as ``0x``-prefixed hex."""
        signed = self.account.sign_message(encode_defunct(text=message))
        return "0x" + bytes(signed.signature).hex()

    def verify_message(self, message: str, signature: str) -> bool:
        """Return True if ``signature`` over ``message`` recovers to this address."""
        try:
            raw = bytes.fromhex(signature.removeprefix("0x"))
        except ValueError:
            return False
        if len(raw) != SIGNATURE_LENGTH:
            return False
        try:
            recovered = Account.recover_message(encode_defunct(text=message), signature=raw)
        except ValueError:
            return False
        return recovered == self.address

    # ------------------------------------------------------------------
    # JWK helpers
    # ------------------------------------------------------------------
    def to_jwk(self, private: bool = False) -> dict:
        """Return the key in JSON Web Key (JWK) format.

        Args:
            private: If ``True`` include the private key material.
        """
        numbers = self.public_numbers()
        jwk = {
            "kty": "EC",
            "crv": "secp256k1",
            "kid": self.kid,
            "x": _b64u(numbers.x.to_bytes(32, "big")),
            "y": _b64u(numbers.y.to_bytes(32, "big")),
        }
        if private:
            jwk["d"] = _b64u(self.private_bytes())
        return jwk

    @classmethod
    def from_jwk(cls, jwk: dict) -> DevKeyPair:
        """Construct a :class:`DevKeyPair` from private JWK data."""
        if jwk.get("kty") != "EC" or jwk.get("crv") != "secp256k1":
            raise ValueError("Unsupported JWK parameters")
        if "d" not in jwk:
            raise ValueError("JWK does not contain private key material")

        return cls.from_private_key("0x" + _b64u_decode(jwk["d"]).hex(), kid=jwk.get("kid"))
