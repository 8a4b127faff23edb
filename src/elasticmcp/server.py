"""MCP 服务端模块.

通过 stdio 把操作目录中的每个操作暴露为一个 MCP 工具，并提供
集群信息、集群健康和索引列表三个只读资源，以及三个提示模板。

stdout 是协议通道，日志只能写到 stderr。
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import signal
import sys
from collections.abc import Mapping
from typing import Any

import mcp.types as types
from dotenv import load_dotenv
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server

from . import __version__
from .config import EnvVars, resolve_config
from .dispatch import OPERATION_PREFIX, OperationDispatcher
from .prompts import PROMPTS, render_prompt
from .registry import ClusterRegistry, LazyRegistry

logger = logging.getLogger(__name__)

SERVER_NAME = "elasticmcp"

# 资源 URI -> (操作名, 名称, 说明)
RESOURCES: dict[str, tuple[str, str, str]] = {
    "elasticsearch://cluster/info": (
        f"{OPERATION_PREFIX}cluster_info",
        "Cluster Information",
        "默认集群的基本信息和版本",
    ),
    "elasticsearch://cluster/health": (
        f"{OPERATION_PREFIX}cluster_health",
        "Cluster Health",
        "默认集群的健康状态",
    ),
    "elasticsearch://indices/list": (
        f"{OPERATION_PREFIX}list_indices",
        "Indices List",
        "默认集群的索引列表及统计信息",
    ),
}


def _to_json(envelope: dict[str, Any]) -> str:
    return json.dumps(envelope, ensure_ascii=False, default=str)


def create_registry(environ: Mapping[str, str]) -> LazyRegistry:
    """创建惰性注册表，首次请求时才解析配置并连接集群."""
    return LazyRegistry(lambda: ClusterRegistry.build(resolve_config(environ)))


def create_server(dispatcher: OperationDispatcher) -> Server:
    """创建 MCP 服务端并注册工具与资源处理函数."""
    server: Server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(
                name=operation.name,
                description=operation.description,
                inputSchema=operation.input_schema(),
            )
            for operation in dispatcher.catalog
        ]

    # 参数校验由 dispatcher 完成，以便返回统一的错误信封
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        envelope = await asyncio.to_thread(dispatcher.dispatch, name, arguments or {})
        return [types.TextContent(type="text", text=_to_json(envelope))]

    @server.list_resources()
    async def list_resources() -> list[types.Resource]:
        return [
            types.Resource(
                uri=uri,
                name=name,
                description=description,
                mimeType="application/json",
            )
            for uri, (_, name, description) in RESOURCES.items()
        ]

    @server.read_resource()
    async def read_resource(uri: Any) -> list[ReadResourceContents]:
        key = str(uri)
        if key not in RESOURCES:
            raise ValueError(f"未知资源: {key}")
        operation_name = RESOURCES[key][0]
        envelope = await asyncio.to_thread(dispatcher.dispatch, operation_name, {})
        return [ReadResourceContents(content=_to_json(envelope), mime_type="application/json")]

    @server.list_prompts()
    async def list_prompts() -> list[types.Prompt]:
        return [
            types.Prompt(
                name=template.name,
                description=template.description,
                arguments=[
                    types.PromptArgument(
                        name=argument.name,
                        description=argument.description,
                        required=argument.required,
                    )
                    for argument in template.arguments
                ],
            )
            for template in PROMPTS.values()
        ]

    @server.get_prompt()
    async def get_prompt(
        name: str, arguments: dict[str, str] | None
    ) -> types.GetPromptResult:
        title, text = render_prompt(name, arguments)
        return types.GetPromptResult(
            description=title,
            messages=[
                types.PromptMessage(
                    role="user", content=types.TextContent(type="text", text=text)
                )
            ],
        )

    return server


async def run_server(environ: Mapping[str, str] | None = None) -> None:
    """运行 stdio MCP 服务端.

    收到 SIGTERM 或 SIGINT 时停止服务；退出前关闭所有集群连接。

    Args:
        environ: 配置来源，默认 os.environ
    """
    registry = create_registry(os.environ if environ is None else environ)
    dispatcher = OperationDispatcher(registry.get)
    server = create_server(dispatcher)

    task = asyncio.current_task()
    loop = asyncio.get_running_loop()
    if task is not None:
        # Windows 事件循环不支持 add_signal_handler
        with contextlib.suppress(NotImplementedError):
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, task.cancel)

    logger.info(f"{SERVER_NAME} {__version__} 启动，共 {len(dispatcher.catalog)} 个操作")
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream, write_stream, server.create_initialization_options()
            )
    except asyncio.CancelledError:
        logger.info("收到终止信号，正在停止服务")
    finally:
        registry.close()
        logger.info("服务已停止")


def setup_logging(level: str | None = None) -> None:
    """配置写到 stderr 的日志."""
    level_name = (level or os.environ.get(EnvVars.LOG_LEVEL) or "INFO").upper()
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    """命令行入口."""
    load_dotenv()
    setup_logging()
    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        logger.info("服务被用户中断")
