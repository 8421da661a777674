"""Chain points, v1 event records and the writer that collects them."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional


@dataclass(frozen=True)
class Point:
    """A position in the chain; slot 0 with an empty hash is the origin."""

    slot: int = 0
    hash: str = ""

    @property
    def is_origin(self) -> bool:
        return self.slot == 0 and not self.hash

    def __str__(self) -> str:
        return f"{self.slot},{self.hash}"

    @classmethod
    def parse(cls, text: str) -> Point:
        """Parse the ``slot,hash`` form produced by ``str(point)``."""
        parts = text.strip().split(",")
        if len(parts) != 2:
            raise ValueError(f"can't parse point value: {text!r}")
        slot_text, hash_text = (part.strip() for part in parts)
        try:
            slot = int(slot_text)
        except ValueError as err:
            raise ValueError(f"invalid slot in point value: {slot_text!r}") from err
        if slot < 0:
            raise ValueError(f"slot can't be negative: {slot}")
        return cls(slot, hash_text)


@dataclass(frozen=True)
class EventContext:
    """Where in the chain an event was found."""

    block_hash: Optional[str] = None
    block_number: Optional[int] = None
    slot: Optional[int] = None
    timestamp: Optional[int] = None
    tx_idx: Optional[int] = None
    tx_hash: Optional[str] = None
    input_idx: Optional[int] = None
    output_idx: Optional[int] = None
    output_address: Optional[str] = None
    certificate_idx: Optional[int] = None

    def merge(self, other: EventContext) -> EventContext:
        """Return a context whose unset fields are filled in from ``other``."""
        missing = {
            f.name: getattr(other, f.name)
            for f in fields(self)
            if getattr(self, f.name) is None
        }
        return replace(self, **missing)


@dataclass
class TxInputRecord:
    variant: ClassVar[str] = "TxInput"

    tx_id: str
    index: int


@dataclass
class OutputAssetRecord:
    variant: ClassVar[str] = "OutputAsset"

    policy: str
    asset: str
    asset_ascii: Optional[str] = None
    amount: int = 0


@dataclass
class PlutusDatumRecord:
    variant: ClassVar[str] = "PlutusDatum"

    datum_hash: str
    plutus_data: Any = None


@dataclass
class TxOutputRecord:
    variant: ClassVar[str] = "TxOutput"

    address: str
    amount: int
    assets: Optional[list[OutputAssetRecord]] = None
    datum_hash: Optional[str] = None
    inline_datum: Optional[PlutusDatumRecord] = None


@dataclass
class MintRecord:
    variant: ClassVar[str] = "Mint"

    policy: str
    asset: str
    quantity: int


@dataclass
class MetadataRecord:
    """A metadata entry; exactly one of the rendition fields is set."""

    variant: ClassVar[str] = "Metadata"

    label: str
    map_json: Optional[Any] = None
    array_json: Optional[Any] = None
    int_scalar: Optional[int] = None
    text_scalar: Optional[str] = None
    bytes_hex: Optional[str] = None


@dataclass
class VKeyWitnessRecord:
    variant: ClassVar[str] = "VKeyWitness"

    vkey_hex: str
    signature_hex: str


@dataclass
class NativeWitnessRecord:
    variant: ClassVar[str] = "NativeWitness"

    policy_id: str
    script_json: Any = None


@dataclass
class PlutusWitnessRecord:
    variant: ClassVar[str] = "PlutusWitness"

    script_hash: str
    script_hex: str


@dataclass
class PlutusRedeemerRecord:
    variant: ClassVar[str] = "PlutusRedeemer"

    purpose: str
    ex_units_mem: int
    ex_units_steps: int
    input_idx: int
    plutus_data: Any = None


@dataclass
class WithdrawalRecord:
    reward_account: str
    coin: int


@dataclass
class TransactionRecord:
    variant: ClassVar[str] = "Transaction"

    hash: str = ""
    fee: int = 0
    ttl: Optional[int] = None
    validity_interval_start: Optional[int] = None
    network_id: Optional[int] = None
    input_count: int = 0
    collateral_input_count: int = 0
    has_collateral_output: bool = False
    output_count: int = 0
    mint_count: int = 0
    total_output: int = 0
    size: int = 0
    metadata: Optional[list[MetadataRecord]] = None
    inputs: Optional[list[TxInputRecord]] = None
    outputs: Optional[list[TxOutputRecord]] = None
    collateral_inputs: Optional[list[TxInputRecord]] = None
    collateral_output: Optional[TxOutputRecord] = None
    mint: Optional[list[MintRecord]] = None
    vkey_witnesses: Optional[list[VKeyWitnessRecord]] = None
    native_witnesses: Optional[list[NativeWitnessRecord]] = None
    plutus_witnesses: Optional[list[PlutusWitnessRecord]] = None
    plutus_redeemers: Optional[list[PlutusRedeemerRecord]] = None
    plutus_data: Optional[list[PlutusDatumRecord]] = None
    withdrawals: Optional[list[WithdrawalRecord]] = None


@dataclass
class CIP25AssetRecord:
    variant: ClassVar[str] = "CIP25Asset"

    version: str
    policy: str
    asset: str
    name: Optional[str] = None
    image: Optional[str] = None
    media_type: Optional[str] = None
    description: Optional[str] = None
    raw_json: Any = None


@dataclass
class CIP15AssetRecord:
    variant: ClassVar[str] = "CIP15Asset"

    voting_key: str
    stake_pub: str
    reward_address: str
    nonce: int
    raw_json: Any = None


@dataclass
class GenericEventData:
    """Event data without a dedicated record, such as blocks or rollbacks."""

    variant: str
    fields: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class Event:
    """A v1 event: data plus the context it was found in."""

    data: Any
    context: EventContext = field(default_factory=EventContext)
    fingerprint: Optional[str] = None

    @property
    def variant(self) -> str:
        """The name of the kind of data this event carries."""
        return self.data.variant


@dataclass(frozen=True)
class ChainEvent:
    """A unit flowing through the pipeline."""

    class Kind(str, Enum):
        APPLY = "apply"
        UNDO = "undo"
        RESET = "reset"

    kind: ChainEvent.Kind
    point: Point
    record: Any = None

    @classmethod
    def apply(cls, point: Point, record: Any) -> ChainEvent:
        return cls(cls.Kind.APPLY, point, record)

    @classmethod
    def reset(cls, point: Point) -> ChainEvent:
        return cls(cls.Kind.RESET, point)


@dataclass
class EventWriter:
    """Collects events found at one point, stamping them with a context."""

    point: Point
    config: Any = None
    buffer: list[ChainEvent] = field(default_factory=list)
    context: EventContext = field(default_factory=EventContext)

    def append(self, data: Any) -> None:
        event = Event(data=data, context=self.context)
        self.buffer.append(ChainEvent.apply(self.point, event))

    def append_from(self, source: Any) -> None:
        """Append a record; records are already valid event data."""
        self.append(source)

    def child_writer(self, extra_context: EventContext) -> EventWriter:
        """Return a writer sharing this buffer, with a more specific context."""
        return EventWriter(
            point=self.point,
            config=self.config,
            buffer=self.buffer,
            context=extra_context.merge(self.context),
        )