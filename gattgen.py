"""Zephyr GATT service generator.

Generates a C header and implementation skeleton for every Bluetooth LE
GATT service described in a JSON configuration file. The implementation
wires the service into Zephyr's BT_GATT_SERVICE_DEFINE registration API.

Usage:
    python gattgen.py --config config-sample.json --output-dir generated
"""

import argparse
import enum
import json
import re
from dataclasses import dataclass
from pathlib import Path

DEFAULT_CONFIG = Path("config-sample.json")
DEFAULT_OUTPUT_DIR = Path("generated")


# ===--- CLI config contracts ---=== #


@dataclass(frozen=True)
class GenerateConfig:
    config_path: Path
    output_dir: Path
    services: frozenset[str]


@dataclass(frozen=True)
class LayoutConfig:
    config_path: Path
    services: frozenset[str]


VALID_ERROR_CODES = {
    "PATH_NOT_FOUND",
    "INVALID_JSON",
    "INVALID_DOCUMENT",
    "MISSING_KEY",
    "INVALID_NAME",
    "INVALID_BASE_UUID",
    "DUPLICATE_NAME",
    "DUPLICATE_FILENAME",
    "INVALID_READ_OPTIONS",
    "INVALID_WRITE_OPTIONS",
    "UNKNOWN_SERVICE",
}
_C_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_FILENAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")


class ConfigError(Exception):
    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown config error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


def validate_name(name: object, owner: str) -> str:
    if isinstance(name, str) and _C_IDENTIFIER_RE.match(name):
        return name
    raise ConfigError(
        "INVALID_NAME",
        f"Invalid name for {owner}: {name!r}",
        "Names must be C identifiers (letters, digits and '_', not starting with a digit).",
    )


def validate_path_exists(
    path: Path | None, flag: str, suggestion: str | None = None
) -> Path:
    if path is None:
        raise ConfigError(
            "PATH_NOT_FOUND",
            f"{flag} is required: no path provided.",
            suggestion or f"Pass the path explicitly: {flag} /path/to/resource",
        )
    if path.exists():
        return path
    raise ConfigError(
        "PATH_NOT_FOUND",
        f"Path for {flag} does not exist: {path}",
        suggestion or "Provide an existing path for this flag.",
    )


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate Zephyr GATT service sources from a JSON description"
    )

    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG)
    parser.add_argument("--output-dir", type=Path, default=DEFAULT_OUTPUT_DIR)
    parser.add_argument("--service", action="append", nargs="+", default=None)
    parser.add_argument("--show-layout", action="store_true", default=False)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def normalize_service_names(raw_services: object) -> tuple[str, ...]:
    if raw_services is None:
        return tuple()
    if not isinstance(raw_services, list):
        raise ConfigError(
            "INVALID_NAME",
            f"Invalid --service value type: {type(raw_services).__name__}",
            "Pass service names as --service NAME.",
        )

    normalized: list[str] = []
    for entry in raw_services:
        names = entry if isinstance(entry, list) else [entry]
        for name in names:
            normalized.append(validate_name(name, "--service"))

    return tuple(normalized)


def validate_config(args: argparse.Namespace) -> GenerateConfig | LayoutConfig:
    services = frozenset(normalize_service_names(args.service))
    config_path = validate_path_exists(
        args.config,
        "--config",
        "Pass the service description explicitly: --config /path/to/config.json",
    )

    if args.show_layout:
        return LayoutConfig(config_path=config_path, services=services)

    return GenerateConfig(
        config_path=config_path,
        output_dir=args.output_dir,
        services=services,
    )


def build_config(argv: list[str] | None = None) -> GenerateConfig | LayoutConfig:
    return validate_config(parse_args(argv))


# ===--- Constants ---=== #

UUID_SEGMENT_COUNT = 5

SERVICE_HEADER_SLOTS = 1
CHARACTERISTIC_SLOTS = 2  # declaration + value
CCC_SLOTS = 1

DEFAULT_VALUE_LENGTH = 1


class Capability(enum.Enum):
    READ = "read"
    WRITE = "write"
    NOTIFY = "notify"
    INDICATE = "indicate"


CALLBACK_CAPABILITIES: tuple[Capability, ...] = (Capability.WRITE, Capability.READ)
"""Capabilities that carry an application callback, in emission order.

Both the callback struct in the header and the handler gating in the
source iterate this tuple through callback_capabilities()."""

CCC_CAPABILITIES = frozenset({Capability.NOTIFY, Capability.INDICATE})

PROPERTY_ORDER: tuple[Capability, ...] = (
    Capability.WRITE,
    Capability.READ,
    Capability.NOTIFY,
    Capability.INDICATE,
)

CHRC_PROPERTIES = {
    Capability.WRITE: "BT_GATT_CHRC_WRITE",
    Capability.READ: "BT_GATT_CHRC_READ",
    Capability.NOTIFY: "BT_GATT_CHRC_NOTIFY",
    Capability.INDICATE: "BT_GATT_CHRC_INDICATE",
}

ATTR_PERMISSIONS = {
    Capability.WRITE: "BT_GATT_PERM_WRITE",
    Capability.READ: "BT_GATT_PERM_READ",
}


# ===--- Data classes ---=== #


@dataclass(frozen=True)
class ReadOptions:
    length: int = DEFAULT_VALUE_LENGTH


@dataclass(frozen=True)
class WriteOptions:
    length: int | None = None
    fixed_length: bool = False
    zero_offset: bool = False


@dataclass(frozen=True)
class SendOptions:
    length: int | None = None


@dataclass(frozen=True)
class FieldSpec:
    """One characteristic of a service.

    Attributes:
        name: Raw characteristic name from the config.
        uuid: Override for segment 0 of the base UUID.
        capabilities: Closed set of declared capabilities.
        read: Read options, present iff READ is declared.
        write: Write options, present iff WRITE is declared.
        notify: Notification options, present iff NOTIFY is declared.
        indicate: Indication options, present iff INDICATE is declared.
    """

    name: str
    uuid: str
    capabilities: frozenset[Capability]
    read: ReadOptions | None = None
    write: WriteOptions | None = None
    notify: SendOptions | None = None
    indicate: SendOptions | None = None

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities


@dataclass(frozen=True)
class BaseUuid:
    segments: tuple[str, ...]

    def __str__(self) -> str:
        return "-".join(self.segments)


@dataclass(frozen=True)
class ServiceSpec:
    """One GATT service and its characteristics, in declaration order.

    Attributes:
        name: Raw service name.
        uuid: Override for segment 0 of the base UUID.
        base_uuid: Base UUID shared by the service and all its fields.
        fields: Characteristics in the order they appear in the table.
        filename: Output file stem for the .h/.c pair.
        header_comment: Text placed in the @file doc comment.
    """

    name: str
    uuid: str
    base_uuid: BaseUuid
    fields: tuple[FieldSpec, ...]
    filename: str
    header_comment: str


@dataclass(frozen=True)
class GattDocument:
    services: tuple[ServiceSpec, ...]


def callback_capabilities(field: FieldSpec) -> tuple[Capability, ...]:
    return tuple(cap for cap in CALLBACK_CAPABILITIES if field.has(cap))


def needs_ccc(field: FieldSpec) -> bool:
    return bool(field.capabilities & CCC_CAPABILITIES)


def needs_state(field: FieldSpec) -> bool:
    return field.has(Capability.READ) or needs_ccc(field)


def state_length(field: FieldSpec) -> int:
    """Size of the state buffer: the largest length any capability declares."""
    declared = []
    if field.read is not None:
        declared.append(field.read.length)
    for options in (field.write, field.notify, field.indicate):
        if options is not None and options.length is not None:
            declared.append(options.length)
    return max(declared, default=DEFAULT_VALUE_LENGTH)


# ===--- Config loading ---=== #


def load_document(path: Path) -> object:
    """Read and decode the JSON configuration file.

    A UTF-8 byte order mark is tolerated.

    Raises:
        ConfigError: INVALID_JSON when the file is not valid JSON.
        OSError: Propagated if the file cannot be read.
    """
    text = Path(path).read_text(encoding="utf-8-sig")
    try:
        return json.loads(text)
    except json.JSONDecodeError as err:
        raise ConfigError(
            "INVALID_JSON",
            f"Malformed JSON in {path}: {err.msg} (line {err.lineno}, col {err.colno})",
            "Fix the syntax error at the reported position.",
        ) from err


def _require_key(entry: dict, key: str, owner: str) -> object:
    if key not in entry:
        raise ConfigError(
            "MISSING_KEY",
            f"{owner} is missing required key '{key}'.",
            f"Add '{key}' to {owner}.",
        )
    return entry[key]


def _require_object(value: object, owner: str) -> dict:
    if not isinstance(value, dict):
        raise ConfigError(
            "INVALID_DOCUMENT",
            f"{owner} must be a JSON object, got {type(value).__name__}.",
        )
    return value


def _require_str(value: object, owner: str, key: str) -> str:
    if not isinstance(value, str) or not value:
        raise ConfigError(
            "INVALID_DOCUMENT",
            f"{owner}: '{key}' must be a non-empty string.",
        )
    return value


def _positive_int(value: object, code: str, owner: str, key: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(
            code,
            f"{owner}: '{key}' must be a positive integer, got {value!r}.",
        )
    return value


def parse_base_uuid(raw: object, owner: str) -> BaseUuid:
    if not isinstance(raw, str):
        raise ConfigError(
            "INVALID_BASE_UUID",
            f"{owner}: base_uuid must be a string, got {type(raw).__name__}.",
        )
    segments = tuple(raw.split("-"))
    if len(segments) != UUID_SEGMENT_COUNT or not all(segments):
        raise ConfigError(
            "INVALID_BASE_UUID",
            f"{owner}: base_uuid {raw!r} has {len(segments)} segments, expected 5.",
            "Use the form xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx.",
        )
    return BaseUuid(segments)


def parse_read_options(raw: object, owner: str) -> ReadOptions | None:
    if raw is None or raw is False:
        return None
    if raw is True:
        return ReadOptions()
    entry = _require_object(raw, f"{owner} read")
    if not entry.get("enable", True):
        return None
    length = entry.get("len", DEFAULT_VALUE_LENGTH)
    return ReadOptions(
        length=_positive_int(length, "INVALID_READ_OPTIONS", owner, "read.len")
    )


def parse_write_options(raw: object, owner: str) -> WriteOptions | None:
    if raw is None or raw is False:
        return None
    if raw is True:
        return WriteOptions()
    entry = _require_object(raw, f"{owner} write")
    if not entry.get("enable", True):
        return None

    length = entry.get("len")
    if length is not None:
        length = _positive_int(length, "INVALID_WRITE_OPTIONS", owner, "write.len")
    fixed_length = bool(entry.get("fixed_len", False))
    if fixed_length and length is None:
        raise ConfigError(
            "INVALID_WRITE_OPTIONS",
            f"{owner}: write.fixed_len requires write.len.",
            "Declare the expected length with write.len or drop fixed_len.",
        )
    return WriteOptions(
        length=length,
        fixed_length=fixed_length,
        zero_offset=bool(entry.get("zero_offset", False)),
    )


def parse_send_options(raw: object, owner: str, key: str) -> SendOptions | None:
    if raw is None or raw is False:
        return None
    if raw is True:
        return SendOptions()
    if not isinstance(raw, dict):
        raise ConfigError(
            "INVALID_DOCUMENT",
            f"{owner}: '{key}' must be true, false or an object, got {raw!r}.",
        )
    if not raw.get("enable", True):
        return None
    length = raw.get("len")
    if length is not None:
        length = _positive_int(length, "INVALID_DOCUMENT", owner, f"{key}.len")
    return SendOptions(length=length)


def parse_field(raw: object, service_name: str, index: int) -> FieldSpec:
    owner = f"Characteristic #{index} of service '{service_name}'"
    entry = _require_object(raw, owner)
    name = validate_name(_require_key(entry, "name", owner), owner)
    owner = f"Characteristic '{name}' of service '{service_name}'"
    uuid = _require_str(_require_key(entry, "uuid", owner), owner, "uuid")

    read = parse_read_options(entry.get("read"), owner)
    write = parse_write_options(entry.get("write"), owner)
    notify = parse_send_options(entry.get("notification"), owner, "notification")
    indicate = parse_send_options(entry.get("indication"), owner, "indication")

    capabilities: set[Capability] = set()
    if read is not None:
        capabilities.add(Capability.READ)
    if write is not None:
        capabilities.add(Capability.WRITE)
    if notify is not None:
        capabilities.add(Capability.NOTIFY)
    if indicate is not None:
        capabilities.add(Capability.INDICATE)

    return FieldSpec(
        name=name,
        uuid=uuid,
        capabilities=frozenset(capabilities),
        read=read,
        write=write,
        notify=notify,
        indicate=indicate,
    )


def check_unique_names(service: ServiceSpec) -> None:
    """Reject a service whose names collide after case folding.

    The service name and every characteristic name share one namespace,
    because the generated symbols are built from their lower/upper forms.
    """
    seen: dict[str, str] = {service.name.lower(): f"service '{service.name}'"}
    for field in service.fields:
        key = field.name.lower()
        if key in seen:
            raise ConfigError(
                "DUPLICATE_NAME",
                f"Characteristic '{field.name}' of service '{service.name}' "
                f"collides with {seen[key]} after case folding.",
                "Rename one of them; generated symbols would overwrite each other.",
            )
        seen[key] = f"characteristic '{field.name}'"


def parse_service(
    raw: object, default_base_uuid: object, index: int
) -> ServiceSpec:
    owner = f"Service entry #{index}"
    entry = _require_object(raw, owner)
    service = _require_object(_require_key(entry, "service", owner), owner)
    name = validate_name(_require_key(service, "name", owner), owner)
    owner = f"Service '{name}'"
    uuid = _require_str(_require_key(service, "uuid", owner), owner, "uuid")

    raw_base = entry.get("base_uuid", default_base_uuid)
    if raw_base is None:
        raise ConfigError(
            "MISSING_KEY",
            f"{owner} has no base_uuid and the document declares none.",
            "Add a top-level 'base_uuid' or one per service entry.",
        )
    base_uuid = parse_base_uuid(raw_base, owner)

    filename = entry.get("filename", name.lower())
    if not isinstance(filename, str) or not _FILENAME_RE.match(filename):
        raise ConfigError(
            "INVALID_NAME",
            f"{owner}: invalid filename {filename!r}.",
            "Use a plain file stem without directories or extension.",
        )
    header_comment = entry.get("file_header_comment", f"{name.upper()} Service")
    if (
        not isinstance(header_comment, str)
        or "*/" in header_comment
        or "\n" in header_comment
        or "\r" in header_comment
    ):
        raise ConfigError(
            "INVALID_DOCUMENT",
            f"{owner}: file_header_comment {header_comment!r} cannot be "
            "placed in a C comment.",
            "Use a single line of text without '*/'.",
        )

    raw_fields = entry.get("characteristics", [])
    if not isinstance(raw_fields, list):
        raise ConfigError(
            "INVALID_DOCUMENT",
            f"{owner}: 'characteristics' must be a list.",
        )
    fields = tuple(parse_field(f, name, i) for i, f in enumerate(raw_fields))

    spec = ServiceSpec(
        name=name,
        uuid=uuid,
        base_uuid=base_uuid,
        fields=fields,
        filename=filename,
        header_comment=header_comment,
    )
    check_unique_names(spec)
    return spec


def parse_document(raw: object) -> GattDocument:
    """Validate a decoded configuration document.

    Accepts either an object with 'services' (and an optional shared
    'base_uuid') or a bare list of service entries each carrying its own
    base_uuid.

    Raises:
        ConfigError: On any structural or naming problem, identifying the
            offending service or characteristic.
    """
    if isinstance(raw, list):
        entries = raw
        default_base_uuid = None
    elif isinstance(raw, dict):
        entries = _require_key(raw, "services", "The configuration document")
        default_base_uuid = raw.get("base_uuid")
    else:
        raise ConfigError(
            "INVALID_DOCUMENT",
            f"Configuration must be a JSON object or list, got {type(raw).__name__}.",
        )

    if not isinstance(entries, list) or not entries:
        raise ConfigError(
            "INVALID_DOCUMENT",
            "Configuration declares no services.",
            "Add at least one service entry.",
        )

    services = tuple(
        parse_service(entry, default_base_uuid, i) for i, entry in enumerate(entries)
    )

    names: dict[str, str] = {}
    filenames: dict[str, str] = {}
    for service in services:
        key = service.name.lower()
        if key in names:
            raise ConfigError(
                "DUPLICATE_NAME",
                f"Service '{service.name}' collides with service "
                f"'{names[key]}' after case folding.",
                "Rename one of them; both would define the same C symbols.",
            )
        names[key] = service.name
        if service.filename in filenames:
            raise ConfigError(
                "DUPLICATE_FILENAME",
                f"Services '{filenames[service.filename]}' and '{service.name}' "
                f"both write {service.filename}.h/.c.",
                "Give each service a distinct 'filename'.",
            )
        filenames[service.filename] = service.name

    return GattDocument(services=services)


def select_services(
    document: GattDocument, names: frozenset[str]
) -> tuple[ServiceSpec, ...]:
    if not names:
        return document.services
    known = {s.name for s in document.services}
    unknown = sorted(names - known)
    if unknown:
        raise ConfigError(
            "UNKNOWN_SERVICE",
            f"Unknown service(s): {', '.join(unknown)}",
            f"Available: {', '.join(sorted(known))}",
        )
    return tuple(s for s in document.services if s.name in names)


# ===--- Identifier derivation ---=== #


@dataclass(frozen=True)
class ServiceIdentifiers:
    lower: str
    upper: str
    include_guard: str
    header_name: str
    callbacks_type: str
    callbacks_var: str
    table: str
    uuid_macro: str
    init_fn: str
    log_module: str

    @property
    def uuid_value_macro(self) -> str:
        return f"{self.uuid_macro}_VAL"


@dataclass(frozen=True)
class FieldIdentifiers:
    """Every C symbol generated for one characteristic.

    callback_type and callback_member take the operation (READ or WRITE)
    so that both renders derive callback names from the same place.
    """

    service_lower: str
    lower: str
    upper: str
    uuid_macro: str
    length_macro: str
    state_type: str
    state_var: str
    notify_flag: str
    indicate_flag: str
    indicate_params: str
    indicate_cb: str
    ccc_changed: str
    read_handler: str
    write_handler: str
    notify_fn: str
    indicate_fn: str

    @property
    def uuid_value_macro(self) -> str:
        return f"{self.uuid_macro}_VAL"

    def callback_type(self, op: Capability) -> str:
        return f"{self.service_lower}_{self.lower}_{op.value}_cb_t"

    def callback_member(self, op: Capability) -> str:
        return f"{self.lower}_{op.value}_cb"


def derive_service_identifiers(name: str, filename: str) -> ServiceIdentifiers:
    lower = name.lower()
    upper = name.upper()
    guard_stem = re.sub(r"\W", "_", filename.upper())
    return ServiceIdentifiers(
        lower=lower,
        upper=upper,
        include_guard=f"{guard_stem}_H_",
        header_name=f"{filename}.h",
        callbacks_type=f"struct {lower}_cb",
        callbacks_var=f"{lower}_cb",
        table=f"{lower}_svc",
        uuid_macro=f"UUID_{upper}",
        init_fn=f"{lower}_init",
        log_module=f"{lower}_service",
    )


def derive_field_identifiers(
    service: ServiceIdentifiers, name: str
) -> FieldIdentifiers:
    lower = name.lower()
    upper = name.upper()
    return FieldIdentifiers(
        service_lower=service.lower,
        lower=lower,
        upper=upper,
        uuid_macro=f"{service.uuid_macro}_{upper}",
        length_macro=f"{service.upper}_{upper}_LEN",
        state_type=f"struct {service.lower}_{lower}_state",
        state_var=f"{lower}_state",
        notify_flag=f"notify_{lower}_enabled",
        indicate_flag=f"indicate_{lower}_enabled",
        indicate_params=f"indicate_{lower}_params",
        indicate_cb=f"{lower}_indicate_cb",
        ccc_changed=f"{lower}_ccc_cfg_changed",
        read_handler=f"read_{lower}",
        write_handler=f"write_{lower}",
        notify_fn=f"{service.lower}_send_{lower}_notify",
        indicate_fn=f"{service.lower}_send_{lower}_indicate",
    )


# ===--- UUID assembly ---=== #


def assemble_uuid(base: BaseUuid, override: str) -> tuple[str, ...]:
    if len(base.segments) != UUID_SEGMENT_COUNT:
        raise ConfigError(
            "INVALID_BASE_UUID",
            f"Base UUID {base} has {len(base.segments)} segments, expected 5.",
        )
    return (override, *base.segments[1:])


def format_uuid_encode(segments: tuple[str, ...]) -> str:
    return ", ".join(f"0x{seg}" for seg in segments)


# ===--- Attribute layout ---=== #


def compute_attribute_layout(fields: tuple[FieldSpec, ...]) -> dict[str, int]:
    """Return the value-slot index of every notifiable/indicatable field.

    The registration macro lays the table out as one primary-service slot
    followed, per field in declaration order, by a declaration slot, a
    value slot and (iff notify or indicate) a CCC slot. The counter tracks
    slots used by fields so far; after adding a field's two slots it equals
    the index of that field's value slot, because the header occupies
    slot 0.

    Args:
        fields: Characteristics in table order.

    Returns:
        Mapping of field name to value-slot index, in field order. Empty
        when no field needs a CCC descriptor.
    """
    counter = 0
    layout: dict[str, int] = {}
    for field in fields:
        counter += CHARACTERISTIC_SLOTS
        if needs_ccc(field):
            layout[field.name] = counter
            counter += CCC_SLOTS
    return layout


def attribute_table_size(fields: tuple[FieldSpec, ...]) -> int:
    return SERVICE_HEADER_SLOTS + sum(
        CHARACTERISTIC_SLOTS + (CCC_SLOTS if needs_ccc(f) else 0) for f in fields
    )


@dataclass(frozen=True)
class AttributeSlot:
    index: int
    role: str
    owner: str


def describe_attribute_table(service: ServiceSpec) -> tuple[AttributeSlot, ...]:
    slots = [AttributeSlot(0, "service", service.name)]
    for field in service.fields:
        slots.append(AttributeSlot(len(slots), "declaration", field.name))
        slots.append(AttributeSlot(len(slots), "value", field.name))
        if needs_ccc(field):
            slots.append(AttributeSlot(len(slots), "ccc", field.name))
    return tuple(slots)


# ===--- Service plan ---=== #


@dataclass(frozen=True)
class FieldPlan:
    spec: FieldSpec
    names: FieldIdentifiers
    uuid: tuple[str, ...]


@dataclass(frozen=True)
class ServicePlan:
    """Everything both renders need for one service, computed once.

    Attributes:
        spec: The validated service description.
        names: Derived service-level identifiers.
        uuid: Assembled 5-segment service UUID.
        fields: Per-field plans in table order.
        value_slots: Output of compute_attribute_layout for spec.fields.
    """

    spec: ServiceSpec
    names: ServiceIdentifiers
    uuid: tuple[str, ...]
    fields: tuple[FieldPlan, ...]
    value_slots: dict[str, int]

    def value_slot(self, field: FieldPlan) -> int:
        return self.value_slots[field.spec.name]


def build_service_plan(service: ServiceSpec) -> ServicePlan:
    names = derive_service_identifiers(service.name, service.filename)
    fields = tuple(
        FieldPlan(
            spec=field,
            names=derive_field_identifiers(names, field.name),
            uuid=assemble_uuid(service.base_uuid, field.uuid),
        )
        for field in service.fields
    )
    return ServicePlan(
        spec=service,
        names=names,
        uuid=assemble_uuid(service.base_uuid, service.uuid),
        fields=fields,
        value_slots=compute_attribute_layout(service.fields),
    )


# ===--- Rendered artifacts ---=== #


@dataclass(frozen=True)
class Section:
    name: str
    lines: tuple[str, ...]


@dataclass(frozen=True)
class RenderedArtifact:
    """One generated file held in memory as ordered named sections.

    Attributes:
        filename: Output filename, e.g. "lbs.h".
        sections: Sections in file order. A section may be empty.
    """

    filename: str
    sections: tuple[Section, ...]

    @property
    def section_names(self) -> tuple[str, ...]:
        return tuple(s.name for s in self.sections)

    def section(self, name: str) -> Section:
        for section in self.sections:
            if section.name == name:
                return section
        raise KeyError(name)


HEADER_SECTIONS: tuple[str, ...] = (
    "guard_open",
    "includes",
    "callback_types",
    "callbacks_struct",
    "init_prototype",
    "send_prototypes",
    "guard_close",
)

SOURCE_SECTIONS: tuple[str, ...] = (
    "includes",
    "uuids",
    "state",
    "callbacks_storage",
    "ccc_handlers",
    "write_handlers",
    "read_handlers",
    "attribute_table",
    "init",
    "send_functions",
)


def _join_blocks(blocks: list[list[str]]) -> tuple[str, ...]:
    lines: list[str] = []
    for block in blocks:
        if lines:
            lines.append("")
        lines.extend(block)
    return tuple(lines)


def _banner(title: str) -> list[str]:
    return ["/*", f" * {title}", " */"]


def _file_comment(comment: str) -> list[str]:
    return ["/**", " * @file", f" * {comment}", " */"]


def assemble_artifact_source(artifact: RenderedArtifact) -> str:
    """Serialize a RenderedArtifact to its final text.

    Non-empty sections are joined with exactly one blank line; empty
    sections leave no trace. The result ends with a single newline.

    Raises:
        ValueError: If the filename does not end with ".h" or ".c".
    """
    if not artifact.filename.endswith((".h", ".c")) or len(artifact.filename) < 3:
        raise ValueError(
            f"artifact filename must end with '.h' or '.c', got {artifact.filename!r}"
        )
    chunks = ["\n".join(s.lines) for s in artifact.sections if s.lines]
    return "\n\n".join(chunks) + "\n"


# ===--- Interface render ---=== #


def _send_kinds(field: FieldSpec) -> list[tuple[Capability, str]]:
    kinds = []
    if field.has(Capability.NOTIFY):
        kinds.append((Capability.NOTIFY, "notification"))
    if field.has(Capability.INDICATE):
        kinds.append((Capability.INDICATE, "indication"))
    return kinds


def _send_fn(names: FieldIdentifiers, kind: Capability) -> str:
    return names.notify_fn if kind is Capability.NOTIFY else names.indicate_fn


def _send_brief(names: FieldIdentifiers, kind: Capability, noun: str) -> str:
    return (
        f"/// @brief {_send_fn(names, kind)} sends the value by {noun} "
        f"through {names.lower} characteristic."
    )


def render_callback_types(plan: ServicePlan) -> tuple[str, ...]:
    blocks = [_banner("Types")]
    for field in plan.fields:
        names = field.names
        for op in callback_capabilities(field.spec):
            if op is Capability.WRITE:
                blocks.append(
                    [
                        f"/// @brief Write callback type for {names.upper} Characteristic.",
                        f"typedef int (*{names.callback_type(op)})(const uint8_t *data, uint16_t len);",
                    ]
                )
            else:
                blocks.append(
                    [
                        f"/// @brief Read callback type for {names.upper} Characteristic.",
                        "///",
                        "/// Fills @p data with at most @p len bytes. Returns the number of",
                        "/// bytes written or a negative error code.",
                        f"typedef int (*{names.callback_type(op)})(uint8_t *data, uint16_t len);",
                    ]
                )
    return _join_blocks(blocks)


def render_callbacks_struct(plan: ServicePlan) -> tuple[str, ...]:
    lines = [
        f"/// @brief Callback struct used by the {plan.names.upper} Service.",
        f"{plan.names.callbacks_type} {{",
    ]
    for field in plan.fields:
        for op in callback_capabilities(field.spec):
            lines.append(
                f"    {field.names.callback_type(op)} {field.names.callback_member(op)};"
            )
    lines.append("};")
    return tuple(lines)


def render_interface(plan: ServicePlan) -> RenderedArtifact:
    names = plan.names

    guard_open = _file_comment(plan.spec.header_comment) + [
        "",
        f"#ifndef {names.include_guard}",
        f"#define {names.include_guard}",
        "",
        "#ifdef __cplusplus",
        'extern "C" {',
        "#endif // __cplusplus",
    ]

    init_prototype = _banner("Functions") + [
        "",
        f"/// @brief Initialize the {names.upper} Service.",
        f"int {names.init_fn}({names.callbacks_type} *callbacks);",
    ]

    send_blocks = []
    for field in plan.fields:
        for kind, noun in _send_kinds(field.spec):
            send_blocks.append(
                [
                    _send_brief(field.names, kind, noun),
                    f"int {_send_fn(field.names, kind)}(const uint8_t *data, uint16_t len);",
                ]
            )

    guard_close = [
        "#ifdef __cplusplus",
        "}",
        "#endif // __cplusplus",
        "",
        f"#endif // {names.include_guard}",
    ]

    return RenderedArtifact(
        filename=names.header_name,
        sections=(
            Section("guard_open", tuple(guard_open)),
            Section("includes", ("#include <stdint.h>",)),
            Section("callback_types", render_callback_types(plan)),
            Section("callbacks_struct", render_callbacks_struct(plan)),
            Section("init_prototype", tuple(init_prototype)),
            Section("send_prototypes", _join_blocks(send_blocks)),
            Section("guard_close", tuple(guard_close)),
        ),
    )


# ===--- Implementation render ---=== #

SOURCE_INCLUDES: tuple[str, ...] = (
    "#include <stddef.h>",
    "#include <string.h>",
    "#include <errno.h>",
    "",
    "#include <zephyr/types.h>",
    "#include <zephyr/sys/util.h>",
    "#include <zephyr/kernel.h>",
    "#include <zephyr/logging/log.h>",
    "#include <zephyr/bluetooth/bluetooth.h>",
    "#include <zephyr/bluetooth/conn.h>",
    "#include <zephyr/bluetooth/uuid.h>",
    "#include <zephyr/bluetooth/gatt.h>",
)


def characteristic_properties(field: FieldSpec) -> str:
    props = [CHRC_PROPERTIES[cap] for cap in PROPERTY_ORDER if field.has(cap)]
    return " | ".join(props) if props else "0"


def characteristic_permissions(field: FieldSpec) -> str:
    perms = [ATTR_PERMISSIONS[cap] for cap in CALLBACK_CAPABILITIES if field.has(cap)]
    return " | ".join(perms) if perms else "BT_GATT_PERM_NONE"


def _uuid_block(label: str, value_macro: str, macro: str, uuid: tuple[str, ...]) -> list[str]:
    return [
        f"/// @brief {label} UUID",
        f"#define {value_macro} \\",
        f"    BT_UUID_128_ENCODE({format_uuid_encode(uuid)})",
        f"#define {macro} BT_UUID_DECLARE_128({value_macro})",
    ]


def render_uuids(plan: ServicePlan) -> tuple[str, ...]:
    names = plan.names
    blocks = [
        _banner("UUID"),
        _uuid_block(
            f"{names.upper} Service", names.uuid_value_macro, names.uuid_macro, plan.uuid
        ),
    ]
    for field in plan.fields:
        blocks.append(
            _uuid_block(
                f"{field.names.upper} Characteristic",
                field.names.uuid_value_macro,
                field.names.uuid_macro,
                field.uuid,
            )
        )
    return _join_blocks(blocks)


def render_state(plan: ServicePlan) -> tuple[str, ...]:
    blocks = []
    for field in plan.fields:
        spec = field.spec
        names = field.names
        if not needs_state(spec):
            continue
        block = [
            f"/// @brief Serialized length of the {names.upper} Characteristic value.",
            f"#define {names.length_macro} {state_length(spec)}",
            "",
            f"/// @brief {names.upper} Characteristic status",
            f"{names.state_type} {{",
            "    uint16_t len;",
            f"    uint8_t serialized[{names.length_macro}];",
            "};",
            f"static {names.state_type} {names.state_var} = {{",
            f"    .len = {names.length_macro},",
            "};",
        ]
        if spec.has(Capability.NOTIFY):
            block += [
                f"/// @brief {names.upper} Characteristic notification flag",
                f"static bool {names.notify_flag};",
            ]
        if spec.has(Capability.INDICATE):
            block += [
                f"/// @brief {names.upper} Characteristic indication flag",
                f"static bool {names.indicate_flag};",
                f"static struct bt_gatt_indicate_params {names.indicate_params};",
            ]
        blocks.append(block)
    if not blocks:
        return ()
    return _join_blocks([_banner("State")] + blocks)


def render_ccc_handlers(plan: ServicePlan) -> tuple[str, ...]:
    blocks = []
    for field in plan.fields:
        spec = field.spec
        names = field.names
        if not needs_ccc(spec):
            continue
        block = [
            "/**",
            f" * Update {names.upper} client configuration flags.",
            " */",
            f"static void {names.ccc_changed}(const struct bt_gatt_attr *attr, uint16_t value)",
            "{",
            "    ARG_UNUSED(attr);",
            "",
        ]
        if spec.has(Capability.NOTIFY):
            block.append(f"    {names.notify_flag} = (value == BT_GATT_CCC_NOTIFY);")
        if spec.has(Capability.INDICATE):
            block.append(f"    {names.indicate_flag} = (value == BT_GATT_CCC_INDICATE);")
        block += [
            f'    LOG_DBG("{names.upper} CCC changed: 0x%04x", value);',
            "}",
        ]
        if spec.has(Capability.INDICATE):
            block += [
                "",
                f"static void {names.indicate_cb}(struct bt_conn *conn,",
                "    struct bt_gatt_indicate_params *params, uint8_t err)",
                "{",
                f'    LOG_DBG("Indication {names.upper} Characteristic %s", err != 0U ? "fail" : "success");',
                "}",
            ]
        blocks.append(block)
    return _join_blocks(blocks)


def render_write_handler(plan: ServicePlan, field: FieldPlan) -> list[str]:
    spec = field.spec
    names = field.names
    options = spec.write or WriteOptions()
    callback = f"{plan.names.callbacks_var}.{names.callback_member(Capability.WRITE)}"

    lines = [
        "/**",
        f" * Callback application function triggered by writing to {names.upper} Characteristic.",
        " */",
        f"static ssize_t {names.write_handler}(",
        "    struct bt_conn *conn,",
        "    const struct bt_gatt_attr *attr,",
        "    const void *buf,",
        "    uint16_t len,",
        "    uint16_t offset,",
        "    uint8_t flags)",
        "{",
        f'    LOG_DBG("Attribute write {names.lower}, handle: %u, conn: %p", attr->handle, (const void *)conn);',
    ]
    if options.fixed_length:
        lines += [
            "",
            f"    if (len != {options.length}U) {{",
            f'        LOG_ERR("Write {names.lower}: Incorrect data length(%u)", len);',
            "        return BT_GATT_ERR(BT_ATT_ERR_INVALID_ATTRIBUTE_LEN);",
            "    }",
        ]
    if options.zero_offset:
        lines += [
            "",
            "    if (offset != 0) {",
            f'        LOG_ERR("Write {names.lower}: Incorrect data offset(%u)", offset);',
            "        return BT_GATT_ERR(BT_ATT_ERR_INVALID_OFFSET);",
            "    }",
        ]
    if needs_state(spec):
        lines += [
            "",
            f"    if (offset > sizeof({names.state_var}.serialized)) {{",
            "        return BT_GATT_ERR(BT_ATT_ERR_INVALID_OFFSET);",
            "    }",
            "",
            f"    if (offset + len > sizeof({names.state_var}.serialized)) {{",
            "        return BT_GATT_ERR(BT_ATT_ERR_INVALID_ATTRIBUTE_LEN);",
            "    }",
            "",
            f"    memcpy({names.state_var}.serialized + offset, buf, len);",
            f"    {names.state_var}.len = offset + len;",
        ]
    lines += [
        "",
        f"    if ({callback}) {{",
        f"        int err = {callback}((const uint8_t *)buf, len);",
        "",
        "        if (err < 0) {",
        "            return BT_GATT_ERR(BT_ATT_ERR_UNLIKELY);",
        "        }",
        "    }",
        "",
        "    return len;",
        "}",
    ]
    return lines


def render_read_handler(plan: ServicePlan, field: FieldPlan) -> list[str]:
    names = field.names
    callback = f"{plan.names.callbacks_var}.{names.callback_member(Capability.READ)}"
    return [
        "/**",
        f" * Callback application function triggered by reading {names.upper} Characteristic.",
        " */",
        f"static ssize_t {names.read_handler}(",
        "    struct bt_conn *conn,",
        "    const struct bt_gatt_attr *attr,",
        "    void *buf,",
        "    uint16_t len,",
        "    uint16_t offset)",
        "{",
        f"    {names.state_type} *state = attr->user_data;",
        "",
        f'    LOG_DBG("Attribute read {names.lower}, handle: %u, conn: %p", attr->handle, (const void *)conn);',
        "",
        f"    if ({callback} && offset == 0) {{",
        f"        int ret = {callback}(state->serialized, sizeof(state->serialized));",
        "",
        "        if (ret < 0) {",
        "            return BT_GATT_ERR(BT_ATT_ERR_UNLIKELY);",
        "        }",
        "        state->len = MIN((uint16_t)ret, sizeof(state->serialized));",
        "    }",
        "",
        "    return bt_gatt_attr_read(conn, attr, buf, len, offset, state->serialized, state->len);",
        "}",
    ]


def render_handlers(plan: ServicePlan, op: Capability) -> tuple[str, ...]:
    render = render_write_handler if op is Capability.WRITE else render_read_handler
    blocks = [
        render(plan, field)
        for field in plan.fields
        if op in callback_capabilities(field.spec)
    ]
    return _join_blocks(blocks)


def render_attribute_table(plan: ServicePlan) -> tuple[str, ...]:
    names = plan.names
    lines = _banner("Service Declaration") + [
        "",
        "BT_GATT_SERVICE_DEFINE(",
        f"    {names.table},",
        f"    BT_GATT_PRIMARY_SERVICE({names.uuid_macro}),",
    ]
    for field in plan.fields:
        spec = field.spec
        fnames = field.names
        ops = callback_capabilities(spec)
        read_cb = fnames.read_handler if Capability.READ in ops else "NULL"
        write_cb = fnames.write_handler if Capability.WRITE in ops else "NULL"
        user_data = f"&{fnames.state_var}" if needs_state(spec) else "NULL"
        lines += [
            "",
            f"    // {fnames.upper} Characteristic",
            "    BT_GATT_CHARACTERISTIC(",
            "        // UUID",
            f"        {fnames.uuid_macro},",
            "        // Properties",
            f"        {characteristic_properties(spec)},",
            "        // Permissions",
            f"        {characteristic_permissions(spec)},",
            "        // Characteristic Attribute read callback",
            f"        {read_cb},",
            "        // Characteristic Attribute write callback",
            f"        {write_cb},",
            "        // Characteristic Attribute user data",
            f"        {user_data}),",
        ]
        if needs_ccc(spec):
            lines += [
                f"    // {fnames.upper} Client Characteristic Configuration Descriptor",
                "    BT_GATT_CCC(",
                f"        {fnames.ccc_changed},",
                "        BT_GATT_PERM_READ | BT_GATT_PERM_WRITE),",
            ]
    lines.append(");")
    return tuple(lines)


def render_init(plan: ServicePlan) -> tuple[str, ...]:
    names = plan.names
    return tuple(
        _banner("Functions")
        + [
            "",
            f"int {names.init_fn}({names.callbacks_type} *callbacks)",
            "{",
            "    if (callbacks) {",
            f"        {names.callbacks_var} = *callbacks;",
            "    }",
            "",
            "    return 0;",
            "}",
        ]
    )


def render_send_function(
    plan: ServicePlan, field: FieldPlan, kind: Capability, noun: str
) -> list[str]:
    names = field.names
    fn = _send_fn(names, kind)
    slot = plan.value_slot(field)
    attr = f"&{plan.names.table}.attrs[{slot}]"
    flag = names.notify_flag if kind is Capability.NOTIFY else names.indicate_flag
    state = names.state_var

    lines = [
        _send_brief(names, kind, noun),
        f"int {fn}(const uint8_t *data, uint16_t len)",
        "{",
        f"    if (!{flag}) {{",
        f'        LOG_ERR("{fn}: {noun} not enabled.");',
        "        return -EACCES;",
        "    }",
        "",
        f"    if (len > sizeof({state}.serialized)) {{",
        "        return -EINVAL;",
        "    }",
        "",
        f"    memcpy({state}.serialized, data, len);",
        f"    {state}.len = len;",
        "",
    ]
    if kind is Capability.NOTIFY:
        lines.append(
            f"    return bt_gatt_notify(NULL, {attr}, {state}.serialized, {state}.len);"
        )
    else:
        params = names.indicate_params
        lines += [
            f"    {params}.attr = {attr};",
            f"    {params}.func = {names.indicate_cb};",
            f"    {params}.destroy = NULL;",
            f"    {params}.data = {state}.serialized;",
            f"    {params}.len = {state}.len;",
            "",
            f"    return bt_gatt_indicate(NULL, &{params});",
        ]
    lines.append("}")
    return lines


def render_implementation(plan: ServicePlan) -> RenderedArtifact:
    names = plan.names
    includes = (
        _file_comment(plan.spec.header_comment)
        + [""]
        + list(SOURCE_INCLUDES)
        + [
            "",
            f'#include "{names.header_name}"',
            "",
            f"LOG_MODULE_REGISTER({names.log_module}, LOG_LEVEL_INF);",
        ]
    )
    callbacks_storage = (
        "/// @brief Service callbacks",
        f"static {names.callbacks_type} {names.callbacks_var};",
    )
    send_blocks = [
        render_send_function(plan, field, kind, noun)
        for field in plan.fields
        for kind, noun in _send_kinds(field.spec)
    ]

    return RenderedArtifact(
        filename=f"{plan.spec.filename}.c",
        sections=(
            Section("includes", tuple(includes)),
            Section("uuids", render_uuids(plan)),
            Section("state", render_state(plan)),
            Section("callbacks_storage", callbacks_storage),
            Section("ccc_handlers", render_ccc_handlers(plan)),
            Section("write_handlers", render_handlers(plan, Capability.WRITE)),
            Section("read_handlers", render_handlers(plan, Capability.READ)),
            Section("attribute_table", render_attribute_table(plan)),
            Section("init", render_init(plan)),
            Section("send_functions", _join_blocks(send_blocks)),
        ),
    )


def render_service(plan: ServicePlan) -> tuple[RenderedArtifact, RenderedArtifact]:
    return render_interface(plan), render_implementation(plan)


# ===--- Layout report ---=== #


def format_attribute_table(plan: ServicePlan) -> str:
    """Return the --show-layout report for one service.

    Output format:

        LBS attribute table (7 slots):

          [0]  service      LBS
          [1]  declaration  button
          [2]  value        button  <- send slot
          [3]  ccc          button

    Value slots of notifiable/indicatable fields are marked with the
    index recorded by compute_attribute_layout.
    """
    slots = describe_attribute_table(plan.spec)
    lines = [f"{plan.spec.name} attribute table ({len(slots)} slots):", ""]
    index_width = len(str(len(slots) - 1)) + 2
    role_width = max(len(s.role) for s in slots)
    for slot in slots:
        index_col = f"[{slot.index}]".ljust(index_width)
        row = f"  {index_col}  {slot.role.ljust(role_width)}  {slot.owner}"
        if slot.role == "value" and plan.value_slots.get(slot.owner) == slot.index:
            row += "  <- send slot"
        lines.append(row)
    lines.append("")
    return "\n".join(lines)


def run_layout(config: LayoutConfig) -> None:
    document = parse_document(load_document(config.config_path))
    for service in select_services(document, config.services):
        print(format_attribute_table(build_service_plan(service)))


# ===--- Writer ---=== #


@dataclass(frozen=True)
class FileWriteResult:
    """Result of writing a single generated file.

    Attributes:
        filename: Filename written, e.g. "lbs.c".
        path: Absolute path of the written file.
        line_count: Number of newline characters in the written content.
        byte_count: Number of bytes written (UTF-8 encoded).
    """

    filename: str
    path: Path
    line_count: int
    byte_count: int


@dataclass(frozen=True)
class PackageWriteResult:
    output_dir: Path
    files: tuple[FileWriteResult, ...]

    @property
    def total_lines(self) -> int:
        """Sum of line_count across all written files."""
        return sum(f.line_count for f in self.files)


def write_artifact(output_dir: Path, artifact: RenderedArtifact) -> FileWriteResult:
    """Write one rendered artifact to disk.

    Thin I/O shell over assemble_artifact_source. Creates output_dir (and
    any missing parents) before writing.

    Raises:
        ValueError: Propagated from assemble_artifact_source.
        OSError: Propagated directly if the filesystem write fails.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    content = assemble_artifact_source(artifact)
    file_path = output_dir / artifact.filename
    file_path.write_text(content, encoding="utf-8")
    resolved = file_path.resolve()
    return FileWriteResult(
        filename=artifact.filename,
        path=resolved,
        line_count=content.count("\n"),
        byte_count=len(resolved.read_bytes()),
    )


def write_artifacts(
    output_dir: Path, artifacts: tuple[RenderedArtifact, ...]
) -> PackageWriteResult:
    """Write every artifact in order. OSError propagates without rollback."""
    files = [write_artifact(output_dir, artifact) for artifact in artifacts]
    return PackageWriteResult(output_dir=Path(output_dir), files=tuple(files))


# ===--- Summary report ---=== #


@dataclass(frozen=True)
class ServiceSummary:
    name: str
    field_count: int
    callback_count: int
    notify_count: int
    indicate_count: int
    attribute_count: int


@dataclass(frozen=True)
class GenerationSummary:
    """Immutable data for the post-generation console report.

    Attributes:
        config_label: Configuration path as given on the command line.
        output_dir: Output directory (verbatim from PackageWriteResult).
        services: One row per generated service, in document order.
        files: Ordered write results from PackageWriteResult.files.
    """

    config_label: str
    output_dir: str
    services: tuple[ServiceSummary, ...]
    files: tuple[FileWriteResult, ...]


def build_service_summary(plan: ServicePlan) -> ServiceSummary:
    fields = plan.spec.fields
    return ServiceSummary(
        name=plan.spec.name,
        field_count=len(fields),
        callback_count=sum(len(callback_capabilities(f)) for f in fields),
        notify_count=sum(1 for f in fields if f.has(Capability.NOTIFY)),
        indicate_count=sum(1 for f in fields if f.has(Capability.INDICATE)),
        attribute_count=attribute_table_size(fields),
    )


def build_generation_summary(
    config_path: Path,
    plans: tuple[ServicePlan, ...],
    write_result: PackageWriteResult,
) -> GenerationSummary:
    return GenerationSummary(
        config_label=str(config_path),
        output_dir=str(write_result.output_dir),
        services=tuple(build_service_summary(p) for p in plans),
        files=write_result.files,
    )


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def format_generation_summary(summary: GenerationSummary) -> str:
    """Render a GenerationSummary as the console report.

    Returns a string with exactly one trailing newline.
    """
    lines: list[str] = []
    lines.append(f"GATT services generated: {len(summary.services)}")
    lines.append("")
    lines.append(f"  Config:     {summary.config_label}")
    lines.append(f"  Output:     {summary.output_dir}")
    lines.append("")
    lines.append("  Services:")
    name_width = max((len(s.name) for s in summary.services), default=0)
    for s in summary.services:
        lines.append(
            f"    {s.name.ljust(name_width)}  "
            f"{_plural(s.field_count, 'characteristic'):<20} "
            f"{_plural(s.callback_count, 'callback'):<13} "
            f"{s.notify_count} notify  {s.indicate_count} indicate  "
            f"{_plural(s.attribute_count, 'attribute')}"
        )

    lines.append("")
    lines.append("  Files written:")
    for file_result in summary.files:
        line_str = f"{file_result.line_count:>6,} lines"
        lines.append(f"    {file_result.filename:<28} {line_str}")

    total_lines = sum(f.line_count for f in summary.files)
    lines.append("")
    lines.append(
        f"  Total: {total_lines:,} lines across {len(summary.files)} files"
    )
    lines.append("")
    return "\n".join(lines)


def print_generation_summary(summary: GenerationSummary) -> None:
    print(format_generation_summary(summary), end="")


# ===--- Pipeline ---=== #


def run_generate(config: GenerateConfig) -> PackageWriteResult:
    """Execute the complete generation pipeline for a GenerateConfig.

    Every selected service is validated, planned and rendered in memory
    before the first file is written, so a configuration error leaves no
    artifacts behind.

    Returns:
        PackageWriteResult describing every file written.

    Raises:
        ConfigError: Invalid configuration document.
        OSError: Configuration not readable or filesystem write failure.
    """
    print(f"Loading: {config.config_path}")
    document = parse_document(load_document(config.config_path))
    services = select_services(document, config.services)
    plans = tuple(build_service_plan(service) for service in services)
    print(
        f"  Services: {len(plans)} selected, "
        f"{sum(len(p.fields) for p in plans)} characteristics"
    )

    artifacts: list[RenderedArtifact] = []
    for plan in plans:
        artifacts.extend(render_service(plan))

    result = write_artifacts(config.output_dir, tuple(artifacts))
    print(
        f"  Written: {len(result.files)} files, "
        f"{result.total_lines} lines to {result.output_dir}"
    )

    print_generation_summary(
        build_generation_summary(config.config_path, plans, result)
    )
    return result


# ===--- Main generation ---=== #


def _report_config_error(err: ConfigError) -> None:
    print(f"Config error [{err.code}]: {err.message}")
    if err.suggestion:
        print(f"Hint: {err.suggestion}")


def main(argv: list[str] | None = None) -> None:
    try:
        config = build_config(argv)
    except ConfigError as err:
        _report_config_error(err)
        raise SystemExit(1) from err

    try:
        if isinstance(config, LayoutConfig):
            run_layout(config)
        else:
            run_generate(config)
    except ConfigError as err:
        _report_config_error(err)
        raise SystemExit(1) from err
    except OSError as err:
        print(f"Error: {err}")
        raise SystemExit(1) from err
    except (RuntimeError, ValueError) as err:
        print(f"Internal error: {err}")
        raise SystemExit(1) from err


if __name__ == "__main__":
    main()
