"""Summaries of decoded transactions and parsing of the transaction extra field."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

TX_EXTRA_TAG_PADDING = 0x00
TX_EXTRA_TAG_PUBKEY = 0x01
TX_EXTRA_NONCE = 0x02
TX_EXTRA_MERGE_MINING_TAG = 0x03
TX_EXTRA_TAG_ADDITIONAL_PUBKEYS = 0x04
TX_EXTRA_MYSTERIOUS_MINERGATE_TAG = 0xDE

TX_EXTRA_NONCE_PAYMENT_ID = 0x00
TX_EXTRA_NONCE_ENCRYPTED_PAYMENT_ID = 0x01

TX_EXTRA_PADDING_MAX_COUNT = 255
TX_EXTRA_NONCE_MAX_COUNT = 255

_KEY_SIZE = 32
_HASH8_SIZE = 8

Output = tuple[str | None, int]


@dataclass
class TxSummary:
    """Money and ring information gathered from the inputs and outputs of a transaction."""

    xmr_outputs: int = 0
    xmr_inputs: int = 0
    mixin_no: int = 0
    num_nonrct_inputs: int = 0
    outputs: list[Output] = field(default_factory=list)
    key_images: list[dict[str, Any]] = field(default_factory=list)

    @property
    def no_outputs(self) -> int:
        return len(self.outputs)

    @property
    def no_inputs(self) -> int:
        return len(self.key_images)


@dataclass(frozen=True)
class PaymentIds:
    """Payment ids found in a transaction extra, as hex strings."""

    payment_id: str | None = None
    payment_id8: str | None = None

    @property
    def found(self) -> bool:
        return self.payment_id is not None or self.payment_id8 is not None


def load_tx(tx: str | bytes | Mapping[str, Any]) -> dict[str, Any]:
    """Return a decoded transaction as a dict; JSON text is parsed first."""
    if isinstance(tx, (str, bytes, bytearray)):
        try:
            decoded = json.loads(tx)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Transaction is not valid JSON: {exc}") from exc
    else:
        decoded = tx
    if not isinstance(decoded, Mapping):
        raise ValueError("Transaction JSON must be an object")
    return dict(decoded)


def _key_inputs(tx: Mapping[str, Any]) -> Iterator[dict[str, Any]]:
    for vin in tx.get("vin") or []:
        key = vin.get("key") if isinstance(vin, Mapping) else None
        if isinstance(key, Mapping):
            yield dict(key)


def sum_money_in_outputs(tx: str | bytes | Mapping[str, Any]) -> tuple[int, int]:
    """Return the total amount in the outputs and the number of outputs."""
    vouts = load_tx(tx).get("vout") or []
    return sum(int(vout.get("amount", 0)) for vout in vouts), len(vouts)


def sum_money_in_inputs(tx: str | bytes | Mapping[str, Any]) -> tuple[int, int]:
    """Return the total amount in the key inputs and the number of key inputs."""
    inputs = list(_key_inputs(load_tx(tx)))
    return sum(int(key.get("amount", 0)) for key in inputs), len(inputs)


def count_nonrct_inputs(tx: str | bytes | Mapping[str, Any]) -> int:
    """Count key inputs that carry a visible, non-zero amount."""
    return sum(1 for key in _key_inputs(load_tx(tx)) if int(key.get("amount", 0)) != 0)


def get_mixin_no(tx: str | bytes | Mapping[str, Any]) -> int:
    """Return the ring size of the first key input that has one, or 0."""
    for key in _key_inputs(load_tx(tx)):
        ring_size = len(key.get("key_offsets") or [])
        if ring_size > 0:
            return ring_size
    return 0


def get_outputs(tx: str | bytes | Mapping[str, Any]) -> list[Output]:
    """Return (public key, amount) for every output; outputs not to a key give (None, 0)."""
    outputs: list[Output] = []
    for vout in load_tx(tx).get("vout") or []:
        target = vout.get("target") or {}
        key = target.get("key") if isinstance(target, Mapping) else None
        if isinstance(key, str):
            outputs.append((key, int(vout.get("amount", 0))))
        else:
            outputs.append((None, 0))
    return outputs


def get_key_images(tx: str | bytes | Mapping[str, Any]) -> list[dict[str, Any]]:
    """Return the key inputs of a transaction."""
    return list(_key_inputs(load_tx(tx)))


def summary_of_in_out_rct(tx: str | bytes | Mapping[str, Any]) -> TxSummary:
    """Summarise the amounts, ring size and non-RingCT inputs of a transaction."""
    decoded = load_tx(tx)
    outputs = get_outputs(decoded)
    key_images = get_key_images(decoded)

    mixin_no = 0
    for key in key_images:
        if mixin_no == 0:
            mixin_no = len(key.get("key_offsets") or [])

    return TxSummary(
        xmr_outputs=sum(amount for key, amount in outputs if key is not None),
        xmr_inputs=sum(int(key.get("amount", 0)) for key in key_images),
        mixin_no=mixin_no,
        num_nonrct_inputs=sum(1 for key in key_images if int(key.get("amount", 0)) != 0),
        outputs=outputs,
        key_images=key_images,
    )


def _coerce_extra(extra: Any) -> bytes:
    if isinstance(extra, Mapping):
        extra = extra.get("extra") or []
    if isinstance(extra, str):
        return bytes.fromhex(extra)
    return bytes(extra)


def _read_varint(data: bytes, pos: int) -> tuple[int, int]:
    value = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise ValueError("Truncated varint in transaction extra")
        byte = data[pos]
        pos += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, pos
        shift += 7


def _take(data: bytes, pos: int, size: int) -> tuple[bytes, int]:
    end = pos + size
    if end > len(data):
        raise ValueError("Truncated field in transaction extra")
    return data[pos:end], end


def _iter_fields(data: bytes) -> Iterator[tuple[int, Any]]:
    pos = 0
    while pos < len(data):
        tag = data[pos]
        pos += 1
        if tag == TX_EXTRA_TAG_PADDING:
            rest = data[pos:]
            if len(rest) + 1 > TX_EXTRA_PADDING_MAX_COUNT or any(rest):
                raise ValueError("Invalid padding in transaction extra")
            yield tag, len(rest) + 1
            return
        if tag == TX_EXTRA_TAG_PUBKEY:
            key, pos = _take(data, pos, _KEY_SIZE)
            yield tag, key
        elif tag == TX_EXTRA_NONCE:
            size, pos = _read_varint(data, pos)
            if size > TX_EXTRA_NONCE_MAX_COUNT:
                raise ValueError("Nonce in transaction extra is too long")
            nonce, pos = _take(data, pos, size)
            yield tag, nonce
        elif tag in (TX_EXTRA_MERGE_MINING_TAG, TX_EXTRA_MYSTERIOUS_MINERGATE_TAG):
            size, pos = _read_varint(data, pos)
            blob, pos = _take(data, pos, size)
            yield tag, blob
        elif tag == TX_EXTRA_TAG_ADDITIONAL_PUBKEYS:
            count, pos = _read_varint(data, pos)
            keys = []
            for _ in range(count):
                key, pos = _take(data, pos, _KEY_SIZE)
                keys.append(key)
            yield tag, keys
        else:
            raise ValueError(f"Unknown tag 0x{tag:02x} in transaction extra")


def _partial_fields(extra: Any) -> list[tuple[int, Any]]:
    fields: list[tuple[int, Any]] = []
    try:
        for item in _iter_fields(_coerce_extra(extra)):
            fields.append(item)
    except ValueError:
        pass
    return fields


def parse_tx_extra(extra: Any) -> list[tuple[int, Any]]:
    """Parse a transaction extra into (tag, value) fields; raise ValueError if malformed."""
    return list(_iter_fields(_coerce_extra(extra)))


def get_payment_id(extra: Any) -> PaymentIds:
    """Find the encrypted or the legacy payment id in the nonce of a transaction extra."""
    try:
        fields = parse_tx_extra(extra)
    except ValueError:
        return PaymentIds()

    nonce = next((value for tag, value in fields if tag == TX_EXTRA_NONCE), None)
    if nonce is None:
        return PaymentIds()

    if len(nonce) == _HASH8_SIZE + 1 and nonce[0] == TX_EXTRA_NONCE_ENCRYPTED_PAYMENT_ID:
        return PaymentIds(payment_id8=nonce[1:].hex())
    if len(nonce) == _KEY_SIZE + 1 and nonce[0] == TX_EXTRA_NONCE_PAYMENT_ID:
        return PaymentIds(payment_id=nonce[1:].hex())
    return PaymentIds()


def get_tx_pub_key(extra: Any) -> str | None:
    """Return the transaction public key; if there are two, the second one is returned."""
    keys = [value for tag, value in _partial_fields(extra) if tag == TX_EXTRA_TAG_PUBKEY]
    if not keys:
        return None
    return keys[1].hex() if len(keys) > 1 else keys[0].hex()


def get_additional_tx_pub_keys(extra: Any) -> list[str]:
    """Return the additional public keys used for outputs to subaddresses."""
    for tag, value in _partial_fields(extra):
        if tag == TX_EXTRA_TAG_ADDITIONAL_PUBKEYS:
            return [key.hex() for key in value]
    return []