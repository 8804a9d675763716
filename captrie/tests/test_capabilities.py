from __future__ import annotations

import pytest

from captrie.core.identity.capabilities import Capability, CapabilitySite, canonical_key
from captrie.core.identity.hashing import compute_digest


def test_canonical_key_format() -> None:
    site = CapabilitySite(module="app.pipeline", file="app/pipeline.py", line=3, column=1)
    assert canonical_key("Parsed", site) == "app.pipeline::Parsed@app/pipeline.py:3:1"


def test_declare_derives_digests_from_canonical_key() -> None:
    site = CapabilitySite(module="app", file="app.py", line=10, column=5)
    cap = Capability.declare("Ready", site, doc="ready to ship")

    assert cap.canonical_key == "app::Ready@app.py:10:5"
    assert cap.digest == compute_digest(cap.canonical_key)
    assert cap.qualified_name == "app::Ready"
    assert len(cap.digits) == 16
    assert str(cap) == "Ready"


def test_same_name_different_site_is_a_different_capability() -> None:
    a = Capability.declare("Ready", CapabilitySite(module="app", file="a.py", line=1))
    b = Capability.declare("Ready", CapabilitySite(module="app", file="b.py", line=1))
    assert a != b
    assert a.canonical_key != b.canonical_key


def test_doc_does_not_take_part_in_identity() -> None:
    site = CapabilitySite(module="app")
    a = Capability.declare("Ready", site, doc="one")
    b = Capability.declare("Ready", site, doc="two")
    assert a == b
    assert hash(a) == hash(b)


def test_capability_is_immutable() -> None:
    cap = Capability.declare("Ready", CapabilitySite(module="app"))
    with pytest.raises(Exception):
        cap.name = "Other"  # type: ignore[misc]


@pytest.mark.parametrize("name", ["", "1abc", "has space", "a-b", "a::b"])
def test_invalid_names_rejected(name: str) -> None:
    with pytest.raises(ValueError):
        Capability.declare(name, CapabilitySite(module="app"))


def test_site_validation() -> None:
    with pytest.raises(ValueError):
        CapabilitySite(module="not a module")
    with pytest.raises(ValueError):
        CapabilitySite(module="app", line=-1)
    with pytest.raises(TypeError):
        CapabilitySite(module="app", column="3")  # type: ignore[arg-type]


def test_custom_digest_fn_is_used() -> None:
    cap = Capability.declare("Ready", CapabilitySite(module="app"), digest_fn=lambda key: 0x42)
    assert cap.digest == 0x42
    assert cap.digits[-2:] == (4, 2)
