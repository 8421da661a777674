# chainflow

Building blocks for pipelines that read chain events, filter them and keep
track of how far they got. Everything is plain Python with no third-party
dependencies.

## Install

    pip install chainflow

To run the test suite:

    pip install "chainflow[test]"
    pytest

## Modules

### `chainflow.retry`

`Policy` is a frozen dataclass holding `max_retries`, `backoff_unit` (seconds),
`backoff_factor` and `max_backoff` (seconds). The defaults are 20 retries, a
5 s unit, a factor of 2 and a 100 s cap. `compute_backoff_delay(policy, retry)`
returns `backoff_unit * backoff_factor ** retry`, capped at `max_backoff`.
`retry_operation(op, policy)` calls `op` and sleeps between failed attempts
until `op` succeeds. Once the retries are used up, the exception from the last
attempt propagates.

### `chainflow.chaintime`

`ChainWellKnownInfo` holds the reference points of the Byron and Shelley eras.
Presets are available from `ChainWellKnownInfo.mainnet()` and
`ChainWellKnownInfo.testnet()`. `NaiveProvider(config)` assumes a fixed slot
length within each era and offers two conversions:

- `slot_to_wallclock(slot)` gives a Unix timestamp.
- `absolute_slot_to_relative(slot)` gives an `(epoch, slot_in_epoch)` pair.

The helpers `compute_linear_timestamp` and `compute_era_epoch` are also
exported. A provider raises `ValueError` for zero or negative epoch lengths.

### `chainflow.model`

- `Point(slot, hash)` renders as `"slot,hash"`, and `Point.parse` reads that
  form back.
- `EventContext` is a frozen dataclass. `merge(other)` fills its unset fields
  from `other`.
- The event records are `TxInputRecord`, `TxOutputRecord`, `OutputAssetRecord`,
  `MintRecord`, `MetadataRecord`, `TransactionRecord`, `CIP25AssetRecord`,
  `CIP15AssetRecord`, witness, datum and redeemer records, and
  `GenericEventData` for kinds without a dedicated record.
- `Event` wraps data, a context and an optional fingerprint.
  `Event.variant` names the kind of data.
- `ChainEvent.apply(point, record)` and `ChainEvent.reset(point)` build the
  units that flow through a pipeline.
- `EventWriter` collects events into a shared buffer.
  `child_writer(extra_context)` returns a writer on the same buffer with a
  more specific context.

### `chainflow.cursor`

`CursorProvider` remembers the last processed `Point`. There are two storages:

- `FileStorage` keeps the point in a text file.
- `MemoryStorage` always reads back its configured point.

`CursorProvider.initialize(config)` takes a mapping tagged by `type`, either
`{"type": "File", "path": "cursor.txt"}` or
`{"type": "Memory", "point": "1234,abcd"}`. When reading fails, the failure is
logged and `get_cursor()` returns `None`. `set_cursor(point)` writes to storage
only if no point is known yet, or if more than ten seconds have passed since
the last write. Storage problems raise `CursorError`.

### `chainflow.metrics`

`Counter` and `Gauge` are thread-safe, in-process metrics.

`MetricsProvider(binding=None, endpoint=None)` keeps the following metrics:

- `chain_tip`
- `rollback_count`
- `source_current_slot`
- `source_current_height`
- `source_event_count`
- `sink_current_slot`
- `sink_event_count`

It updates them through `on_chain_tip`, `on_source_event` and
`on_sink_event`, and `readings()` returns all current values.

`Utils(cursor=None, metrics=None)` is a facade for sources and sinks. It offers
`get_cursor_if_any()`, `track_source_progress(event)`,
`track_sink_progress(event)` and `track_chain_tip(tip)`.
`track_sink_progress` also advances the cursor when the event carries a slot
and a block hash.

### `chainflow.dsl`

`Predicate.from_dict({"predicate": ..., "argument": ...})` builds a condition
on v1 events, and `event_matches(event)` evaluates it. The available
predicates are:

- `variant_in`, `variant_not_in`
- `policy_equals`, `asset_equals`, `address_equals`
- `metadata_label_equals`, `metadata_any_sub_label_equals`
- `v_key_witnesses_includes`, `native_scripts_includes`,
  `plutus_scripts_includes`
- `not`, `any_of`, `all_of`

Variant, policy, asset, address and label comparisons ignore case
(`relaxed_str_matches`). Witness and script comparisons are exact.

### `chainflow.metadata` and `chainflow.cip`

`chainflow.metadata` handles rendering:

- `metadatum_to_json` and `to_metadata_record` render transaction metadata.
  Maps are given as `MetadatumMap`.
- `relay_to_string` renders pool relays (`SingleHostAddr`, `SingleHostName`,
  `MultiHostName`).
- `to_withdrawal_record` drops a leading `e1` reward-account header.
- `rollback_from_point` builds `RollBack` event data.

`chainflow.cip` extracts CIP records and appends them to an `EventWriter`:

- `crawl_metadata_label_721` extracts CIP-25 asset records from label 721.
- `crawl_metadata_label_61284` extracts a CIP-15 record from label 61284.

### `chainflow.fingerprint`

`build_fingerprint(event, seed=0)` returns a `slot.prefix.hash` identifier,
where the hash is `murmur3_x64_128` over the event's identifying parts.
Events that lack those parts raise `FingerprintError`.
`apply_fingerprints(events, seed=0)` sets the fingerprint on each event it
yields, and logs and skips failures.

### `chainflow.match_pattern`

`Address.from_bytes` decodes raw address bytes for the Byron, Shelley and
stake kinds. It offers hex and bech32 forms of the whole address and of its
payment and stake parts. `bech32_encode` is exported as well.

`Predicate.from_dict` accepts the following keys:

- `block`, with `slot_before` and `slot_after` bounds (both exclusive)
- `output_address`
- `withdrawal_address`
- `collateral_address`
- `not`, `any_of`, `all_of`

Address patterns take the form `{"value": {"ExactHex": ...}}`, with
`ExactHex`, `ExactBech32`, `PaymentHex`, `PaymentBech32`, `StakeHex` or
`StakeBech32`. `tx_match(point, tx)` evaluates a predicate against a
`ParsedTx`.

### `chainflow.filters`

`build_filter(config)` builds a stage from a mapping tagged by `type`. With no
config it builds `LegacyV1`.

- `Noop`, `Json` and `Wasm` build a `PassthroughFilter`.
- `Dsl` builds a `DslFilter` and needs a `predicate`.
- `MatchPattern` builds a `MatchPatternFilter` and needs a `predicate`.
- `LegacyV1` builds a stage that turns resets into `RollBack` events. It
  accepts boolean `LegacyV1Config` options.

`run_filters(filters, units)` feeds each `ChainEvent` through the stages in
order and yields what comes out. Misconfiguration and units that a stage
cannot handle raise `FilterError`.

## Example

    from chainflow.chaintime import ChainWellKnownInfo, NaiveProvider
    from chainflow.filters import build_filter, run_filters
    from chainflow.model import ChainEvent, Event, MintRecord, Point
    from chainflow.retry import Policy, retry_operation

    provider = NaiveProvider(ChainWellKnownInfo.mainnet())
    provider.slot_to_wallclock(4492800)          # 1596059091
    provider.absolute_slot_to_relative(4492800)  # (208, 0)

    result = retry_operation(lambda: "done", Policy(max_retries=3))

    dsl = build_filter({
        "type": "Dsl",
        "predicate": {"predicate": "variant_in", "argument": ["mint"]},
    })
    unit = ChainEvent.apply(Point(10, "ab"), Event(MintRecord("p", "a", 1)))
    list(run_filters([dsl], [unit]))  # [unit]

## What it does not do

- **No command or daemon.** The package has no command-line program or daemon
  that wires sources, filters and sinks together, and it provides no sources
  or sinks.
- **No metrics server.** `MetricsProvider` keeps its metrics in memory and
  validates its binding, but it does not serve them over HTTP.
- **No decoding of raw block or transaction bytes.** The `LegacyV1` stage
  raises `FilterError` on raw block records. `MatchPatternFilter` expects an
  already built `ParsedTx`.