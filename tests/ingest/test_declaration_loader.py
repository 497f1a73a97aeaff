"""Tests for declaration loading and variable binding."""

import pytest
import yaml
from infraplan.ingest.declaration_loader import load_declarations, parse_declarations, parse_var_assignments
from infraplan.utils.errors import DeclarationError


@pytest.fixture
def declaration_file(tmp_path):
    """Write a small declaration file with variables."""
    content = """
variables:
  project: shop
  web_count: 2
resource_types:
  aws_instance:
    replace_on_change: [ami]
resources:
  - type: aws_vpc
    name: main
    attributes:
      cidr_block: 10.0.0.0/16
      tags:
        Name: ${var.project}-vpc
  - type: aws_instance
    name: web
    count: ${var.web_count}
    attributes:
      ami: ami-123
      subnet_id: ${aws_vpc.main.id}
      tags:
        Name: ${var.project}-web-${count.index}
"""
    path = tmp_path / "main.yaml"
    path.write_text(content)
    return path


class TestLoadDeclarations:
    """Test loading declaration files."""

    def test_load_valid_file(self, declaration_file):
        """Variables are bound, count is resolved, count.index is deferred."""
        declaration_set = load_declarations(str(declaration_file))

        assert [d.address for d in declaration_set.declarations] == ["aws_vpc.main", "aws_instance.web"]
        vpc, web = declaration_set.declarations
        assert vpc.attributes["tags"]["Name"] == "shop-vpc"
        assert web.count == 2
        assert web.attributes["tags"]["Name"] == "shop-web-${count.index}"
        assert web.attributes["subnet_id"] == "${aws_vpc.main.id}"
        assert declaration_set.resource_types["aws_instance"].replace_on_change == ["ami"]
        assert declaration_set.source == str(declaration_file)

    def test_variable_override(self, declaration_file):
        declaration_set = load_declarations(str(declaration_file), {"web_count": 5, "project": "blog"})

        assert declaration_set.declarations[1].count == 5
        assert declaration_set.variables["project"] == "blog"

    def test_missing_file(self, tmp_path):
        with pytest.raises(DeclarationError, match="not found"):
            load_declarations(str(tmp_path / "missing.yaml"))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("resources: [unclosed")
        with pytest.raises(DeclarationError, match="Invalid YAML"):
            load_declarations(str(path))


class TestParseDeclarations:
    """Test validation of declaration documents."""

    def test_empty_document(self):
        assert parse_declarations(None).declarations == []

    def test_document_must_be_mapping(self):
        with pytest.raises(DeclarationError):
            parse_declarations(["not", "a", "mapping"])

    def test_unset_variable(self):
        data = yaml.safe_load("variables:\n  region:\nresources: []")
        with pytest.raises(DeclarationError, match="region"):
            parse_declarations(data)

    def test_unset_variable_provided(self):
        data = yaml.safe_load("variables:\n  region:\nresources: []")
        assert parse_declarations(data, variables={"region": "eu-west-1"}).variables == {"region": "eu-west-1"}

    def test_unknown_resource_field(self):
        data = {"resources": [{"type": "aws_vpc", "name": "main", "lifecycle": {}}]}
        with pytest.raises(DeclarationError, match="unknown fields lifecycle"):
            parse_declarations(data)

    def test_count_and_for_each_exclusive(self):
        data = {"resources": [{"type": "aws_subnet", "name": "s", "count": 2, "for_each": ["a"]}]}
        with pytest.raises(DeclarationError, match="mutually exclusive"):
            parse_declarations(data)

    def test_negative_count(self):
        data = {"resources": [{"type": "aws_subnet", "name": "s", "count": -1}]}
        with pytest.raises(DeclarationError):
            parse_declarations(data)

    def test_for_each_from_variable(self):
        data = {
            "variables": {"subnets": {"a": "10.0.1.0/24", "b": "10.0.2.0/24"}},
            "resources": [{
                "type": "aws_subnet",
                "name": "public",
                "for_each": "${var.subnets}",
                "attributes": {"cidr_block": "${each.value}"},
            }],
        }
        declaration = parse_declarations(data).declarations[0]
        assert declaration.for_each == {"a": "10.0.1.0/24", "b": "10.0.2.0/24"}
        assert declaration.attributes["cidr_block"] == "${each.value}"

    def test_count_index_outside_count_is_kept_for_builder(self):
        """count.index is deferred at load time; the builder rejects it on uncounted declarations."""
        data = {"resources": [{"type": "aws_vpc", "name": "v", "attributes": {"n": "${count.index}"}}]}
        assert parse_declarations(data).declarations[0].attributes["n"] == "${count.index}"

    def test_values_take_their_stored_form(self):
        data = yaml.safe_load(
            "variables:\n  launched: 2024-05-01\n"
            "resources:\n  - type: aws_security_group\n    name: web\n"
            "    attributes:\n      ports: {80: http, 443: https}\n      launched: ${var.launched}\n"
        )
        declaration = parse_declarations(data).declarations[0]
        assert declaration.attributes == {"ports": {"80": "http", "443": "https"}, "launched": "2024-05-01"}

    def test_key_that_cannot_be_stored(self):
        data = yaml.safe_load(
            "resources:\n  - type: aws_vpc\n    name: v\n    attributes:\n      windows: {2024-05-01: open}\n"
        )
        with pytest.raises(DeclarationError, match="cannot be stored as JSON"):
            parse_declarations(data)


class TestVarAssignments:
    """Test --var parsing."""

    def test_values_parsed_as_yaml(self):
        variables = parse_var_assignments(["count=3", "name=web", "azs=[a, b]", "enabled=true"])
        assert variables == {"count": 3, "name": "web", "azs": ["a", "b"], "enabled": True}

    def test_value_may_contain_equals(self):
        assert parse_var_assignments(["query=a=b"]) == {"query": "a=b"}

    def test_empty_value(self):
        assert parse_var_assignments(["name="]) == {"name": ""}

    def test_missing_equals(self):
        with pytest.raises(DeclarationError, match="expected name=value"):
            parse_var_assignments(["count"])
