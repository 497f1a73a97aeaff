"""Shared fixtures: declaration documents and a plan/apply harness."""

import pytest
import yaml
from infraplan.apply.executor import ApplyExecutor
from infraplan.graph.builder import build_graph
from infraplan.graph.resolver import resolve_order
from infraplan.ingest.declaration_loader import parse_declarations
from infraplan.planning.engine import create_plan
from infraplan.providers.memory import InMemoryProvider
from infraplan.state.store import InMemoryStateStore


VSI_DOCUMENT = """
resources:
  - type: aws_vpc
    name: v
    attributes:
      cidr_block: 10.0.0.0/16
      tags:
        Name: main
  - type: aws_subnet
    name: s
    attributes:
      vpc_id: "${aws_vpc.v.id}"
      cidr_block: 10.0.1.0/24
  - type: aws_instance
    name: i
    attributes:
      subnet_id: "${aws_subnet.s.id}"
      instance_type: t3.micro
"""


class Harness:
    """Plans documents against one state store and applies them with one provider."""

    def __init__(self, provider=None, store=None):
        self.provider = provider or InMemoryProvider()
        self.store = store or InMemoryStateStore()

    def plan(self, document, resource_types=None, strict_types=False, variables=None):
        declarations = parse_declarations(yaml.safe_load(document), variables=variables)
        graph = build_graph(declarations)
        order = resolve_order(graph)
        types = dict(resource_types or {})
        types.update(declarations.resource_types)
        return create_plan(graph, order, self.store.snapshot(), resource_types=types, strict_types=strict_types)

    def apply(self, plan, max_workers=1):
        return ApplyExecutor(self.provider, self.store, max_workers=max_workers, poll_interval=0.01).apply(plan)

    def converge(self, document, **kwargs):
        return self.apply(self.plan(document, **kwargs))


@pytest.fixture
def vsi_document():
    """VPC <- subnet <- instance, declared in dependency order."""
    return VSI_DOCUMENT


@pytest.fixture
def harness():
    return Harness()


@pytest.fixture
def make_harness():
    """Factory for harnesses with a custom provider or store."""
    return Harness
