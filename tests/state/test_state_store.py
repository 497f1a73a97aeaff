"""Tests for the state store."""

import json
import pytest
from infraplan.state.models import STATE_FORMAT_VERSION, StateRecord
from infraplan.state.store import FileStateStore, InMemoryStateStore
from infraplan.utils.errors import StateCorruption


@pytest.fixture
def vpc_record():
    return StateRecord(
        address="aws_vpc.main",
        resource_type="aws_vpc",
        provider_id="vpc-000000000001",
        attributes={"cidr_block": "10.0.0.0/16", "tags": {"Name": "main"}},
        outputs={"arn": "arn:infraplan:local:000000000000:vpc/vpc-000000000001"},
    )


@pytest.fixture
def subnet_record():
    return StateRecord(
        address="aws_subnet.a",
        resource_type="aws_subnet",
        provider_id="subnet-000000000002",
        attributes={"vpc_id": "vpc-000000000001"},
        dependencies=["aws_vpc.main"],
    )


class TestStateRecord:
    """Test attribute lookup used for reference resolution."""

    def test_id_is_provider_id(self, vpc_record):
        assert vpc_record.lookup("id") == "vpc-000000000001"

    def test_outputs_and_attributes(self, vpc_record):
        assert vpc_record.lookup("arn").startswith("arn:infraplan:")
        assert vpc_record.lookup("cidr_block") == "10.0.0.0/16"
        assert vpc_record.lookup("tags.Name") == "main"

    def test_unknown_attribute(self, vpc_record):
        with pytest.raises(KeyError):
            vpc_record.lookup("ipv6_cidr_block")


class TestInMemoryStateStore:
    """Test get/put/delete semantics."""

    def test_put_get_delete(self, vpc_record):
        store = InMemoryStateStore()
        assert store.get("aws_vpc.main") is None

        store.put(vpc_record)
        assert store.get("aws_vpc.main") == vpc_record

        store.delete("aws_vpc.main")
        assert store.get("aws_vpc.main") is None

    def test_put_replaces(self, vpc_record):
        store = InMemoryStateStore([vpc_record])
        store.put(vpc_record.model_copy(update={"provider_id": "vpc-2"}))
        assert store.get("aws_vpc.main").provider_id == "vpc-2"
        assert len(store.list()) == 1

    def test_delete_missing_is_noop(self):
        store = InMemoryStateStore()
        store.delete("aws_vpc.missing")
        assert store.snapshot().serial == 0

    def test_serial_counts_writes(self, vpc_record, subnet_record):
        store = InMemoryStateStore()
        store.put(vpc_record)
        store.put(subnet_record)
        store.delete("aws_vpc.main")
        assert store.snapshot().serial == 3

    def test_returned_records_are_copies(self, vpc_record):
        store = InMemoryStateStore([vpc_record])
        store.get("aws_vpc.main").attributes["cidr_block"] = "changed"
        store.snapshot().records["aws_vpc.main"].attributes["cidr_block"] = "changed"
        assert store.get("aws_vpc.main").attributes["cidr_block"] == "10.0.0.0/16"

    def test_list_keeps_write_order(self, vpc_record, subnet_record):
        store = InMemoryStateStore()
        store.put(subnet_record)
        store.put(vpc_record)
        assert [record.address for record in store.list()] == ["aws_subnet.a", "aws_vpc.main"]


class TestFileStateStore:
    """Test the durable JSON store."""

    def test_missing_file_starts_empty(self, tmp_path):
        store = FileStateStore(str(tmp_path / "state.json"))
        assert store.list() == []
        assert not (tmp_path / "state.json").exists()

    def test_writes_survive_reopen(self, tmp_path, vpc_record, subnet_record):
        path = tmp_path / "nested" / "state.json"
        store = FileStateStore(str(path))
        store.put(vpc_record)
        store.put(subnet_record)

        reopened = FileStateStore(str(path))
        assert reopened.get("aws_subnet.a") == subnet_record
        assert [r.address for r in reopened.list()] == ["aws_vpc.main", "aws_subnet.a"]
        assert reopened.snapshot().serial == 2

    def test_delete_is_written(self, tmp_path, vpc_record):
        path = tmp_path / "state.json"
        store = FileStateStore(str(path))
        store.put(vpc_record)
        store.delete("aws_vpc.main")

        assert FileStateStore(str(path)).get("aws_vpc.main") is None

    def test_no_temp_files_left(self, tmp_path, vpc_record):
        store = FileStateStore(str(tmp_path / "state.json"))
        store.put(vpc_record)
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_file_format(self, tmp_path, vpc_record):
        path = tmp_path / "state.json"
        FileStateStore(str(path)).put(vpc_record)

        data = json.loads(path.read_text())
        assert data["version"] == STATE_FORMAT_VERSION
        assert data["serial"] == 1
        assert data["records"]["aws_vpc.main"]["provider_id"] == "vpc-000000000001"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")
        with pytest.raises(StateCorruption, match="not valid JSON"):
            FileStateStore(str(path))

    def test_unsupported_version(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"version": 99, "serial": 0, "records": {}}))
        with pytest.raises(StateCorruption, match="version"):
            FileStateStore(str(path))

    def test_malformed_record(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({
            "version": STATE_FORMAT_VERSION,
            "serial": 1,
            "records": {"aws_vpc.main": {"address": "aws_vpc.main"}},
        }))
        with pytest.raises(StateCorruption, match="malformed"):
            FileStateStore(str(path))

    def test_key_address_mismatch(self, tmp_path, vpc_record):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({
            "version": STATE_FORMAT_VERSION,
            "serial": 1,
            "records": {"aws_vpc.other": vpc_record.model_dump()},
        }))
        with pytest.raises(StateCorruption, match="claims address"):
            FileStateStore(str(path))
