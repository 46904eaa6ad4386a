"""Minimal ABI word codec for static getters (uint, int, bool, address).

Only what the reader needs: calldata = 4-byte selector + 32-byte words,
return data = sequence of 32-byte words.
"""

from src.gm_common.errors import ChainReadError

WORD_HEX = 64
_INT256_SIGN = 1 << 255
_UINT256_MOD = 1 << 256


def _strip_0x(value: str) -> str:
    return value[2:] if value.startswith(("0x", "0X")) else value


def encode_address(address: str) -> str:
    return _strip_0x(address).lower().rjust(WORD_HEX, "0")


def encode_call(selector: str, *addresses: str) -> str:
    """Calldata for `selector` with address arguments."""
    return "0x" + _strip_0x(selector) + "".join(encode_address(a) for a in addresses)


def decode_words(data: str) -> list[int]:
    raw = _strip_0x(data or "")
    if not raw:
        raise ChainReadError("empty return data (no contract at address?)")
    if len(raw) % WORD_HEX:
        raise ChainReadError(f"return data is not word-aligned ({len(raw)} hex chars)")
    try:
        return [int(raw[i : i + WORD_HEX], 16) for i in range(0, len(raw), WORD_HEX)]
    except ValueError as exc:
        raise ChainReadError(f"return data is not hex: {exc}") from exc


def decode_uint(data: str) -> int:
    return decode_words(data)[0]


def decode_int(data: str) -> int:
    word = decode_words(data)[0]
    return word - _UINT256_MOD if word & _INT256_SIGN else word


def decode_bool(data: str) -> bool:
    word = decode_words(data)[0]
    if word not in (0, 1):
        raise ChainReadError(f"invalid bool word: {word}")
    return word == 1


def decode_address(data: str) -> str:
    word = decode_words(data)[0]
    if word >> 160:
        raise ChainReadError("address word has dirty high bits")
    return "0x" + format(word, "040x")
