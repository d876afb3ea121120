import inspect

from reahl.adtflow import __version__


class McpDependencyNotInstalled(Exception):
    pass


def import_fast_mcp():
    try:
        from mcp.server.fastmcp import FastMCP
    except ModuleNotFoundError as module_not_found_error:
        raise McpDependencyNotInstalled(
            'AdtFlowMCP requires the mcp package. '
            'Install with: pip install reahl-adtflow'
        ) from module_not_found_error
    return FastMCP


def create_server(
    allow_write=False,
    allow_delete=False,
    environment_factory=None,
):
    if allow_delete and not allow_write:
        raise ValueError('allow_delete requires allow_write.')
    fast_mcp = import_fast_mcp()
    register_tools = import_tool_registration()
    try:
        constructor_signature = inspect.signature(fast_mcp)
    except (TypeError, ValueError):
        constructor_signature = None
    supports_keyword_arguments = any(
        parameter.kind == inspect.Parameter.VAR_KEYWORD
        for parameter in (
            constructor_signature.parameters.values()
            if constructor_signature
            else []
        )
    )
    server_arguments = {'name': 'AdtFlowMCP'}
    if (
        supports_keyword_arguments
        or (
            constructor_signature
            and 'version' in constructor_signature.parameters
        )
    ):
        server_arguments['version'] = __version__
    mcp_server = fast_mcp(**server_arguments)
    register_tools(
        mcp_server,
        allow_write=allow_write,
        allow_delete=allow_delete,
        environment_factory=environment_factory,
    )
    return mcp_server


def import_tool_registration():
    try:
        from reahl.adtflow.mcp.tools import register_tools
    except ModuleNotFoundError as module_not_found_error:
        if module_not_found_error.name in ('requests', 'urllib3'):
            raise McpDependencyNotInstalled(
                'AdtFlowMCP requires %s. '
                'Install project dependencies first.'
                % module_not_found_error.name
            ) from module_not_found_error
        raise
    return register_tools
