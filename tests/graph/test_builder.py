"""Tests for expanding declarations into the resource graph."""

import pytest
from infraplan.graph.builder import build_graph, expand_declaration
from infraplan.ingest.declaration_loader import parse_declarations
from infraplan.ingest.expressions import Reference
from infraplan.ingest.models import ResourceDeclaration
from infraplan.utils.errors import DeclarationError, DuplicateIdentity, UnresolvedReference


def _graph(resources, variables=None):
    return build_graph(parse_declarations({"variables": variables or {}, "resources": resources}))


class TestExpandDeclaration:
    """Test count/for_each expansion."""

    def test_plain_declaration(self):
        declaration = ResourceDeclaration(type="aws_vpc", name="main")
        assert expand_declaration(declaration) == [(None, {})]

    def test_count(self):
        declaration = ResourceDeclaration(type="aws_instance", name="web", count=3)
        assert [index for index, _ in expand_declaration(declaration)] == [0, 1, 2]

    def test_count_zero(self):
        declaration = ResourceDeclaration(type="aws_instance", name="web", count=0)
        assert expand_declaration(declaration) == []

    def test_for_each_mapping_keeps_order(self):
        declaration = ResourceDeclaration(type="aws_subnet", name="s", for_each={"b": 2, "a": 1})
        expanded = expand_declaration(declaration)
        assert [index for index, _ in expanded] == ["b", "a"]
        assert expanded[0][1] == {"each": {"key": "b", "value": 2}}

    def test_for_each_list(self):
        declaration = ResourceDeclaration(type="aws_subnet", name="s", for_each=["a", "b"])
        assert [index for index, _ in expand_declaration(declaration)] == ["a", "b"]

    def test_for_each_duplicate_key(self):
        declaration = ResourceDeclaration(type="aws_subnet", name="s", for_each=["a", "a"])
        with pytest.raises(DuplicateIdentity) as exc_info:
            expand_declaration(declaration)
        assert exc_info.value.address == 'aws_subnet.s["a"]'

    def test_for_each_list_of_mappings_rejected(self):
        declaration = ResourceDeclaration(type="aws_subnet", name="s", for_each=[{"cidr": "x"}])
        with pytest.raises(DeclarationError, match="scalars"):
            expand_declaration(declaration)


class TestBuildGraph:
    """Test graph construction."""

    def test_instances_and_edges(self):
        graph = _graph([
            {"type": "aws_vpc", "name": "v", "attributes": {"cidr_block": "10.0.0.0/16"}},
            {"type": "aws_subnet", "name": "s", "attributes": {"vpc_id": "${aws_vpc.v.id}"}},
        ])

        assert graph.addresses() == ["aws_vpc.v", "aws_subnet.s"]
        assert graph.graph.number_of_edges() == 1
        assert graph.get_dependencies("aws_subnet.s") == ["aws_vpc.v"]
        assert graph.get_instance("aws_subnet.s").attributes["vpc_id"] == Reference(target="aws_vpc.v")

    def test_count_expansion(self):
        graph = _graph([
            {"type": "aws_instance", "name": "web", "count": 2,
             "attributes": {"tags": {"Name": "web-${count.index}"}, "index": "${count.index}"}},
        ])

        assert graph.addresses() == ["aws_instance.web[0]", "aws_instance.web[1]"]
        web1 = graph.get_instance("aws_instance.web[1]")
        assert web1.index == 1
        assert web1.attributes == {"tags": {"Name": "web-1"}, "index": 1}

    def test_for_each_expansion_with_nested_index(self):
        graph = _graph([
            {"type": "aws_subnet", "name": "public", "for_each": "${var.subnets}",
             "attributes": {"cidr_block": "${each.value}", "availability_zone": "${each.key}"}},
            {"type": "aws_nat_gateway", "name": "nat", "for_each": "${var.subnets}",
             "attributes": {"subnet_id": '${aws_subnet.public["${each.key}"].id}'}},
        ], variables={"subnets": {"us-east-1a": "10.0.1.0/24", "us-east-1b": "10.0.2.0/24"}})

        subnet = graph.get_instance('aws_subnet.public["us-east-1b"]')
        assert subnet.attributes == {"cidr_block": "10.0.2.0/24", "availability_zone": "us-east-1b"}
        assert graph.get_dependencies('aws_nat_gateway.nat["us-east-1a"]') == ['aws_subnet.public["us-east-1a"]']

    def test_unindexed_reference_to_family_expands(self):
        """A reference to a counted declaration without an index means every instance."""
        graph = _graph([
            {"type": "aws_subnet", "name": "public", "count": 2, "attributes": {}},
            {"type": "aws_lb", "name": "web", "attributes": {"subnets": "${aws_subnet.public.id}"}},
        ])

        lb = graph.get_instance("aws_lb.web")
        assert lb.attributes["subnets"] == [
            Reference(target="aws_subnet.public[0]"),
            Reference(target="aws_subnet.public[1]"),
        ]
        assert lb.dependencies == ["aws_subnet.public[0]", "aws_subnet.public[1]"]

    def test_depends_on(self):
        graph = _graph([
            {"type": "aws_internet_gateway", "name": "gw", "attributes": {}},
            {"type": "aws_eip", "name": "nat", "attributes": {}, "depends_on": ["aws_internet_gateway.gw"]},
        ])
        assert graph.get_dependencies("aws_eip.nat") == ["aws_internet_gateway.gw"]

    def test_dependencies_are_unique(self):
        graph = _graph([
            {"type": "aws_vpc", "name": "v", "attributes": {}},
            {"type": "aws_subnet", "name": "s",
             "attributes": {"vpc_id": "${aws_vpc.v.id}", "vpc_arn": "${aws_vpc.v.arn}"},
             "depends_on": ["aws_vpc.v"]},
        ])
        assert graph.get_instance("aws_subnet.s").dependencies == ["aws_vpc.v"]

    def test_duplicate_declaration(self):
        with pytest.raises(DuplicateIdentity) as exc_info:
            _graph([
                {"type": "aws_vpc", "name": "v", "attributes": {}},
                {"type": "aws_vpc", "name": "v", "attributes": {"cidr_block": "10.1.0.0/16"}},
            ])
        assert exc_info.value.address == "aws_vpc.v"

    def test_unresolved_reference(self):
        with pytest.raises(UnresolvedReference) as exc_info:
            _graph([{"type": "aws_subnet", "name": "s", "attributes": {"vpc_id": "${aws_vpc.missing.id}"}}])
        assert exc_info.value.source == "aws_subnet.s"
        assert exc_info.value.target == "aws_vpc.missing"

    def test_unresolved_depends_on(self):
        with pytest.raises(UnresolvedReference):
            _graph([{"type": "aws_eip", "name": "e", "depends_on": ["aws_internet_gateway.gw"]}])

    def test_index_out_of_range(self):
        with pytest.raises(UnresolvedReference, match="no such instance"):
            _graph([
                {"type": "aws_instance", "name": "web", "count": 1},
                {"type": "aws_eip", "name": "e", "attributes": {"instance": "${aws_instance.web[3].id}"}},
            ])

    def test_index_on_single_instance(self):
        with pytest.raises(UnresolvedReference, match="not declared with count or for_each"):
            _graph([
                {"type": "aws_vpc", "name": "v"},
                {"type": "aws_subnet", "name": "s", "attributes": {"vpc_id": "${aws_vpc.v[0].id}"}},
            ])

    def test_count_index_without_count(self):
        with pytest.raises(DeclarationError, match="not available"):
            _graph([{"type": "aws_vpc", "name": "v", "attributes": {"n": "${count.index}"}}])

    def test_forward_reference_allowed(self):
        """Declaration order does not constrain references."""
        graph = _graph([
            {"type": "aws_subnet", "name": "s", "attributes": {"vpc_id": "${aws_vpc.v.id}"}},
            {"type": "aws_vpc", "name": "v"},
        ])
        assert graph.get_dependencies("aws_subnet.s") == ["aws_vpc.v"]
