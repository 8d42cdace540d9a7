"""Triplet: sender IP, optional sender address, recipient address.

Textual form is positional:
    "<ip> <recipient>"
    "<ip> <sender> <recipient>"

The token count decides whether a sender is present. Addresses are kept
verbatim; only the IP is validated.
"""
from __future__ import annotations

import ipaddress
from dataclasses import dataclass

from greylistd.domain.types import IPAddress
from greylistd.errors import ProtocolError


@dataclass(frozen=True, slots=True)
class Triplet:
    """One mail transaction as seen by the MTA policy hook."""
    sender_ip: IPAddress
    recipient_email: str
    sender_email: str | None = None

    @classmethod
    def parse(cls, text: str) -> Triplet:
        """Parse the textual form. Raises ProtocolError on anything else."""
        return cls.from_tokens(text.split())

    @classmethod
    def from_tokens(cls, tokens: list[str]) -> Triplet:
        """Build a triplet from 2 or 3 already-split tokens."""
        if len(tokens) not in (2, 3):
            raise ProtocolError(f"Invalid triplet: {' '.join(tokens)!r}")
        try:
            ip = ipaddress.ip_address(tokens[0])
        except ValueError:
            raise ProtocolError(f"Invalid IP address: {tokens[0]!r}") from None
        if len(tokens) == 2:
            return cls(sender_ip=ip, recipient_email=tokens[1])
        return cls(sender_ip=ip, sender_email=tokens[1], recipient_email=tokens[2])

    def format(self) -> str:
        """Inverse of parse(): the sender token is omitted when absent."""
        if self.sender_email is None:
            return f"{self.sender_ip} {self.recipient_email}"
        return f"{self.sender_ip} {self.sender_email} {self.recipient_email}"

    def __str__(self) -> str:
        return self.format()
