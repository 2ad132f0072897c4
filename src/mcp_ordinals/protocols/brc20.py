"""BRC-20 token operations carried as JSON inscriptions.

BRC-20 is a token standard using JSON inscriptions:
- Deploy: Create new token
- Mint: Mint tokens
- Transfer: Transfer tokens

Each operation is inscribed with content type "application/json".
Reference: https://domo-2.gitbook.io/brc-20-experiment/
"""

import json
from abc import abstractmethod
from dataclasses import dataclass
from typing import Optional, Union

from mcp_ordinals.envelope import (
    JSON_CONTENT_TYPE,
    ORD_MARKER,
    decode_inscription,
    encode_inscription,
)
from mcp_ordinals.protocols.base import Protocol


TICK_LENGTH = 4


def _check_tick(tick: str) -> None:
    if len(tick) != TICK_LENGTH:
        raise ValueError(f"Tick must be exactly {TICK_LENGTH} characters, got {len(tick)}")


def _to_json(data: dict) -> str:
    return json.dumps(data, separators=(',', ':'))


class _BRC20Operation(Protocol):
    """Shared serialization for BRC-20 operations."""

    @abstractmethod
    def to_dict(self) -> dict:
        """Convert to the BRC-20 JSON object."""
        pass

    def to_json(self) -> str:
        """Convert to BRC-20 JSON format."""
        return _to_json(self.to_dict())

    def to_bytes(self) -> bytes:
        return self.to_json().encode('utf-8')

    def to_script(self) -> bytes:
        """Convert to an inscription envelope script."""
        return encode_inscription(ORD_MARKER, JSON_CONTENT_TYPE, self.to_bytes())


@dataclass
class BRC20Deploy(_BRC20Operation):
    """BRC-20 deploy operation."""

    tick: str
    max_supply: int
    mint_limit: Optional[int] = None
    decimals: int = 18

    def __post_init__(self):
        _check_tick(self.tick)

    def to_dict(self) -> dict:
        data = {
            "p": "brc-20",
            "op": "deploy",
            "tick": self.tick,
            "max": str(self.max_supply),
        }
        if self.mint_limit is not None:
            data["lim"] = str(self.mint_limit)
        if self.decimals != 18:
            data["dec"] = str(self.decimals)
        return data


@dataclass
class BRC20Mint(_BRC20Operation):
    """BRC-20 mint operation."""

    tick: str
    amount: int

    def __post_init__(self):
        _check_tick(self.tick)

    def to_dict(self) -> dict:
        return {"p": "brc-20", "op": "mint", "tick": self.tick, "amt": str(self.amount)}


@dataclass
class BRC20Transfer(_BRC20Operation):
    """BRC-20 transfer operation."""

    tick: str
    amount: int

    def __post_init__(self):
        _check_tick(self.tick)

    def to_dict(self) -> dict:
        return {"p": "brc-20", "op": "transfer", "tick": self.tick, "amt": str(self.amount)}


BRC20Operation = Union[BRC20Deploy, BRC20Mint, BRC20Transfer]


class BRC20Protocol:
    """BRC-20 protocol parser and helpers."""

    @staticmethod
    def parse(json_str: str) -> BRC20Operation:
        """Parse BRC-20 JSON into operation object.

        Args:
            json_str: BRC-20 JSON string

        Returns:
            Appropriate BRC20 operation object

        Raises:
            ValueError: If not valid BRC-20 JSON
        """
        data = json.loads(json_str)

        if data.get("p") != "brc-20":
            raise ValueError(f"Not a BRC-20 inscription: p={data.get('p')}")

        op = data.get("op")
        tick = data.get("tick", "")

        if op == "deploy":
            return BRC20Deploy(
                tick=tick,
                max_supply=int(data.get("max", 0)),
                mint_limit=int(data["lim"]) if "lim" in data else None,
                decimals=int(data.get("dec", 18)),
            )
        elif op == "mint":
            return BRC20Mint(tick=tick, amount=int(data.get("amt", 0)))
        elif op == "transfer":
            return BRC20Transfer(tick=tick, amount=int(data.get("amt", 0)))
        else:
            raise ValueError(f"Unknown BRC-20 operation: {op}")

    @classmethod
    def from_script(cls, script: bytes) -> BRC20Operation:
        """Parse a BRC-20 operation out of an inscription envelope.

        Raises:
            ValueError: If the envelope does not carry BRC-20 JSON
        """
        inscription = decode_inscription(script)
        if inscription.type != "json" or not isinstance(inscription.content, str):
            raise ValueError(f"Not a JSON inscription: type={inscription.type}")
        return cls.parse(inscription.content)
