from importlib.util import find_spec
from unittest.mock import patch

from reahl.tofu import NoException
from reahl.tofu import expected

from reahl.adtflow import __version__
from reahl.adtflow.mcp.server import create_server
from reahl.adtflow.mcp.server import McpDependencyNotInstalled
from reahl.adtflow.mcp.server import import_fast_mcp


def test_import_fast_mcp_matches_environment_dependency_state():
    expected_exception = (
        McpDependencyNotInstalled
        if find_spec('mcp.server.fastmcp') is None
        else NoException
    )
    with expected(expected_exception):
        import_fast_mcp()


def test_create_server_passes_policy_flags_to_tool_registration():
    class FakeServer:
        def __init__(self):
            self.name = None
            self.version = None

    def fake_fast_mcp(name, version):
        fake_server = FakeServer()
        fake_server.name = name
        fake_server.version = version
        return fake_server

    captured = {}

    def fake_environment_factory():
        return None

    def fake_register_tools(
        mcp_server,
        allow_write=False,
        allow_delete=False,
        environment_factory=None,
    ):
        captured['mcp_server'] = mcp_server
        captured['allow_write'] = allow_write
        captured['allow_delete'] = allow_delete
        captured['environment_factory'] = environment_factory

    with patch(
        'reahl.adtflow.mcp.server.import_fast_mcp',
        return_value=fake_fast_mcp,
    ):
        with patch(
            'reahl.adtflow.mcp.server.import_tool_registration',
            return_value=fake_register_tools,
        ):
            mcp_server = create_server(
                allow_write=True,
                allow_delete=True,
                environment_factory=fake_environment_factory,
            )

    assert mcp_server is captured['mcp_server']
    assert mcp_server.name == 'AdtFlowMCP'
    assert mcp_server.version == __version__
    assert captured['allow_write']
    assert captured['allow_delete']
    assert captured['environment_factory'] is fake_environment_factory


def test_create_server_supports_fast_mcp_without_version_argument():
    class FakeServer:
        def __init__(self):
            self.name = None

    def fake_fast_mcp(name):
        fake_server = FakeServer()
        fake_server.name = name
        return fake_server

    captured = {}

    def fake_register_tools(
        mcp_server,
        allow_write=False,
        allow_delete=False,
        environment_factory=None,
    ):
        captured['mcp_server'] = mcp_server
        captured['allow_write'] = allow_write
        captured['allow_delete'] = allow_delete

    with patch(
        'reahl.adtflow.mcp.server.import_fast_mcp',
        return_value=fake_fast_mcp,
    ):
        with patch(
            'reahl.adtflow.mcp.server.import_tool_registration',
            return_value=fake_register_tools,
        ):
            mcp_server = create_server()

    assert mcp_server is captured['mcp_server']
    assert mcp_server.name == 'AdtFlowMCP'
    assert not captured['allow_write']
    assert not captured['allow_delete']


def test_create_server_rejects_delete_without_write_permission():
    with expected(ValueError):
        create_server(allow_write=False, allow_delete=True)
