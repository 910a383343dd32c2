import json

import pytest

from deployment.registry import RegistryEntry, read_registry, write_registry

SEPOLIA = 11155111
LOCAL = 1337

VAULT_ABI = [
    {"type": "function", "name": "setDealsRole", "inputs": [], "outputs": []},
    {"type": "constructor", "inputs": []},
    {"type": "function", "name": "getProtocolBalance", "inputs": [], "outputs": []},
]


def _entry(name, address, chain_id=SEPOLIA, args=None):
    return RegistryEntry(
        chain_id=chain_id,
        name=name,
        address=address,
        args=args or [],
        abi=list(VAULT_ABI),
        tx_hash="0x" + "ab" * 32,
        block_number=42,
        deployer="0x0000000000000000000000000000000000000001",
    )


@pytest.fixture
def entries():
    return [
        _entry("Vault", "0x00000000000000000000000000000000000000BB", args=["0xAAA"]),
        _entry("Settings", "0x00000000000000000000000000000000000000AA"),
    ]


def test_write_then_read_registry(tmp_path, entries):
    filepath = tmp_path / "artifacts" / "sepolia.json"

    output = write_registry(entries=entries, filepath=filepath)

    assert output == filepath
    assert sorted(read_registry(filepath)) == sorted(
        entry._replace(abi=sorted(entry.abi, key=lambda d: (d["type"], d.get("name", ""))))
        for entry in entries
    )


def test_registry_layout_is_sorted(tmp_path, entries):
    filepath = tmp_path / "sepolia.json"

    write_registry(entries=entries, filepath=filepath)

    data = json.loads(filepath.read_text())
    assert list(data) == [str(SEPOLIA)]
    assert list(data[str(SEPOLIA)]) == ["Settings", "Vault"]
    vault = data[str(SEPOLIA)]["Vault"]
    assert vault["args"] == ["0xAAA"]
    assert [entry["type"] for entry in vault["abi"]] == ["constructor", "function", "function"]
    assert [entry.get("name") for entry in vault["abi"]][1:] == [
        "getProtocolBalance",
        "setDealsRole",
    ]


def test_registry_merges_other_chains(tmp_path, entries):
    filepath = tmp_path / "registry.json"
    write_registry(entries=entries, filepath=filepath)

    output = write_registry(
        entries=[_entry("Settings", "0x00000000000000000000000000000000000000CC", LOCAL)],
        filepath=filepath,
    )

    assert output == filepath
    chain_ids = {entry.chain_id for entry in read_registry(filepath)}
    assert chain_ids == {SEPOLIA, LOCAL}


def test_registry_refuses_chain_overlap(tmp_path, entries):
    filepath = tmp_path / "registry.json"
    write_registry(entries=entries, filepath=filepath)

    output = write_registry(
        entries=[_entry("Deals", "0x00000000000000000000000000000000000000EE")],
        filepath=filepath,
    )

    assert output == tmp_path / "registry.unmerged.json"
    assert {entry.name for entry in read_registry(filepath)} == {"Settings", "Vault"}
    assert [entry.name for entry in read_registry(output)] == ["Deals"]


def test_empty_registry_is_not_written(tmp_path):
    filepath = tmp_path / "registry.json"

    write_registry(entries=[], filepath=filepath)

    assert not filepath.exists()
