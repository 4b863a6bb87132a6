"""Pytest fixtures shared by the restforge tests"""

import pytest

from restforge.configs import GlobalConfigs
from restforge.models import Response


@pytest.fixture
def manifest():
    """A manifest with two resources"""
    return {
        "host": "http://example.org",
        "client_id": "example",
        "resources": {
            "User": {
                "all": {"path": "/users"},
                "by_id": {"path": "/users/{id}"},
            },
            "Blog": {
                "post": {"method": "post", "path": "/blogs"},
                "add_comment": {"method": "put", "path": "/blogs/{id}/comment"},
            },
        },
    }


@pytest.fixture
def stub_transport():
    """
    Transport class recording every instance it builds.

    Set ``outcomes`` to a list of status codes, Responses or exceptions; they
    are consumed in order and the last one repeats.
    """

    class StubTransport:
        name = "Stub"
        instances: list["StubTransport"] = []
        outcomes: list = [200]

        def __init__(self, request, configs):
            self.request = request
            self.configs = configs
            type(self).instances.append(self)

        async def call(self):
            outcomes = type(self).outcomes
            outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
            if isinstance(outcome, Exception):
                raise outcome
            if isinstance(outcome, int):
                return Response(request=self.request, status=outcome, headers={}, body=b"")
            return outcome

    return StubTransport


@pytest.fixture
def configs():
    return GlobalConfigs(
        context={},
        middleware=[],
        max_middleware_stack_execution_allowed=2,
        transport=None,
        transport_configs={"Stub": {"config": "configs"}},
    )
