import argparse
import json
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

GENERATOR_DIR = Path(__file__).resolve().parent.parent
if str(GENERATOR_DIR) not in sys.path:
    sys.path.insert(0, str(GENERATOR_DIR))

import gattgen  # noqa: E402

BASE_UUID = "11111111-2222-3333-4444-555555555555"


@pytest.fixture
def fixture_config() -> Path:
    return GENERATOR_DIR / "tests" / "fixtures" / "config-sample.json"


@pytest.fixture
def write_config_file(tmp_path: Path) -> Callable[[object], Path]:
    def _write_config_file(document: object, name: str = "config.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(document), encoding="utf-8")
        return path

    return _write_config_file


@pytest.fixture
def make_args(tmp_path: Path) -> Callable[..., argparse.Namespace]:
    config = tmp_path / "config.json"
    config.write_text("{}\n", encoding="utf-8")

    def _make_args(**overrides: object) -> argparse.Namespace:
        base_args: dict[str, object] = {
            "config": config,
            "output_dir": tmp_path / "out",
            "service": None,
            "show_layout": False,
        }
        base_args.update(overrides)
        return argparse.Namespace(**base_args)

    return _make_args


@pytest.fixture
def make_field() -> Callable[..., gattgen.FieldSpec]:
    def _make_field(
        name: str,
        *,
        read: bool = False,
        write: bool = False,
        notify: bool = False,
        indicate: bool = False,
        uuid: str = "0000aaaa",
        read_length: int = 1,
        write_length: int | None = None,
        fixed_length: bool = False,
        zero_offset: bool = False,
    ) -> gattgen.FieldSpec:
        caps = set()
        if read:
            caps.add(gattgen.Capability.READ)
        if write:
            caps.add(gattgen.Capability.WRITE)
        if notify:
            caps.add(gattgen.Capability.NOTIFY)
        if indicate:
            caps.add(gattgen.Capability.INDICATE)
        return gattgen.FieldSpec(
            name=name,
            uuid=uuid,
            capabilities=frozenset(caps),
            read=gattgen.ReadOptions(length=read_length) if read else None,
            write=(
                gattgen.WriteOptions(
                    length=write_length,
                    fixed_length=fixed_length,
                    zero_offset=zero_offset,
                )
                if write
                else None
            ),
        )

    return _make_field


@pytest.fixture
def make_service() -> Callable[..., gattgen.ServiceSpec]:
    def _make_service(
        fields: list[gattgen.FieldSpec],
        *,
        name: str = "LBS",
        uuid: str = "aaaaaaaa",
        base_uuid: str = BASE_UUID,
        filename: str | None = None,
        header_comment: str = "Test Service",
    ) -> gattgen.ServiceSpec:
        return gattgen.ServiceSpec(
            name=name,
            uuid=uuid,
            base_uuid=gattgen.BaseUuid(tuple(base_uuid.split("-"))),
            fields=tuple(fields),
            filename=filename or name.lower(),
            header_comment=header_comment,
        )

    return _make_service


@pytest.fixture
def make_plan(
    make_service: Callable[..., gattgen.ServiceSpec],
) -> Callable[..., gattgen.ServicePlan]:
    def _make_plan(fields: list[gattgen.FieldSpec], **kwargs: object) -> gattgen.ServicePlan:
        return gattgen.build_service_plan(make_service(fields, **kwargs))

    return _make_plan
