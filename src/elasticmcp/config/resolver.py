"""配置解析模块.

将环境变量解析为规范化的多集群配置（CanonicalConfig）。

解析由一组有序的规则函数完成，每条规则接收环境变量映射，
返回 ``{集群名: 原始配置字典}``，不适用时返回 None。
第一条返回非空结果的规则生效，后续规则不再合并：

1. named_cluster_rule: ES_CLUSTER_NAME + ES_URL/ES_NODE，命名单集群
2. bulk_clusters_rule: ES_CLUSTERS，JSON 格式的多集群声明
3. legacy_cluster_rule: ES_URL/ES_NODE，无名称的旧版单集群，固定命名为 "default"

使用示例:
    import os
    from elasticmcp.config import resolve_config

    config = resolve_config(os.environ)
    print(config.names)
"""

import json
import logging
import math
from collections.abc import Callable, Mapping
from typing import Any

from ..connection.exceptions import ConnectionConfigError
from ..connection.models import (
    AuthConfig,
    CanonicalConfig,
    ClusterConfig,
    IndexPolicy,
    TimeoutConfig,
    TlsConfig,
)
from ..exceptions import ConfigInvalidError
from .constants import DEFAULT_AWS_SERVICE, DEFAULT_CLUSTER_NAME, EnvVars

logger = logging.getLogger(__name__)

RawClusters = dict[str, Any]
Rule = Callable[[Mapping[str, str]], RawClusters | None]

_ENTRY_KEYS = {
    "url",
    "node",
    "nodes",
    "auth",
    "tls",
    "ssl",
    "request_timeout",
    "ping_timeout",
    "max_retries",
    "http_compress",
    "default_index",
    "index_prefix",
}
_AUTH_KEYS = {"username", "password", "api_key", "aws_region", "aws_service"}
_TLS_KEYS = {"verify_certs", "ca_certs", "ca_bundle", "client_cert", "client_key"}

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


# ============================================================
# 值转换
# ============================================================


def _env(environ: Mapping[str, str], key: str) -> str | None:
    """读取环境变量，空白字符串视为未设置."""
    value = environ.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _to_str(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConnectionConfigError(f"{field_name} 必须是字符串，当前值: {value!r}")
    return value.strip() or None


def _to_number(value: Any, field_name: str, integer: bool = False) -> int | float | None:
    """将配置值转换为数字，支持数字字符串."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConnectionConfigError(f"{field_name} 必须是数字，当前值: {value!r}")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError as e:
            raise ConnectionConfigError(
                f"{field_name} 必须是数字，当前值: {value!r}"
            ) from e
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ConnectionConfigError(f"{field_name} 必须是数字，当前值: {value!r}")
    if integer:
        if value != int(value):
            raise ConnectionConfigError(f"{field_name} 必须是整数，当前值: {value!r}")
        return int(value)
    return value


def _to_bool(value: Any, field_name: str) -> bool | None:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    raise ConnectionConfigError(f"{field_name} 必须是布尔值，当前值: {value!r}")


def _to_hosts(entry: Mapping[str, Any]) -> tuple[str, ...]:
    """合并主节点地址与额外节点列表，保持顺序并去重."""
    primary = entry.get("url") or entry.get("node")
    nodes = entry.get("nodes") or []
    if isinstance(nodes, str):
        nodes = [n for n in nodes.split(",")]
    if not isinstance(nodes, list):
        raise ConnectionConfigError(f"nodes 必须是列表，当前值: {nodes!r}")

    hosts: list[str] = []
    for host in ([primary] if primary else []) + nodes:
        if not isinstance(host, str):
            raise ConnectionConfigError(f"节点地址必须是字符串，当前值: {host!r}")
        host = host.strip()
        if host and host not in hosts:
            hosts.append(host)
    return tuple(hosts)


def _warn_unknown_keys(section: Mapping[str, Any], allowed: set[str], where: str) -> None:
    unknown = sorted(set(section) - allowed)
    if unknown:
        logger.warning(f"{where} 包含未知字段，已忽略: {', '.join(unknown)}")


def _section(entry: Mapping[str, Any], *keys: str) -> Mapping[str, Any]:
    for key in keys:
        value = entry.get(key)
        if value is not None:
            if not isinstance(value, Mapping):
                raise ConnectionConfigError(f"{key} 必须是对象，当前值: {value!r}")
            return value
    return {}


def build_cluster_config(name: str, entry: Any) -> ClusterConfig:
    """将单个集群的原始配置字典转换为 ClusterConfig.

    Args:
        name: 集群名称
        entry: 原始配置字典（多集群 JSON 声明中的单个条目，或由环境变量构造）

    Returns:
        校验通过的 ClusterConfig

    Raises:
        ConnectionConfigError: 字段缺失、类型错误或不满足 ClusterConfig 约束时抛出
    """
    if not isinstance(entry, Mapping):
        raise ConnectionConfigError(f"集群 '{name}' 的配置必须是对象")
    _warn_unknown_keys(entry, _ENTRY_KEYS, f"集群 '{name}' 的配置")

    auth_raw = _section(entry, "auth")
    _warn_unknown_keys(auth_raw, _AUTH_KEYS, f"集群 '{name}' 的 auth")
    aws_region = _to_str(auth_raw.get("aws_region"), "auth.aws_region")
    auth = AuthConfig(
        username=_to_str(auth_raw.get("username"), "auth.username"),
        password=_to_str(auth_raw.get("password"), "auth.password"),
        api_key=_to_str(auth_raw.get("api_key"), "auth.api_key"),
        aws_region=aws_region,
        aws_service=(
            _to_str(auth_raw.get("aws_service"), "auth.aws_service")
            or DEFAULT_AWS_SERVICE
        )
        if aws_region
        else None,
    )

    tls_raw = _section(entry, "tls", "ssl")
    _warn_unknown_keys(tls_raw, _TLS_KEYS, f"集群 '{name}' 的 tls")
    verify_certs = _to_bool(tls_raw.get("verify_certs"), "tls.verify_certs")
    tls = TlsConfig(
        verify_certs=True if verify_certs is None else verify_certs,
        ca_certs=_to_str(tls_raw.get("ca_certs"), "tls.ca_certs"),
        ca_bundle=_to_str(tls_raw.get("ca_bundle"), "tls.ca_bundle"),
        client_cert=_to_str(tls_raw.get("client_cert"), "tls.client_cert"),
        client_key=_to_str(tls_raw.get("client_key"), "tls.client_key"),
    )

    timeout_kwargs: dict[str, Any] = {}
    for key, integer in (
        ("request_timeout", False),
        ("ping_timeout", False),
        ("max_retries", True),
    ):
        value = _to_number(entry.get(key), key, integer=integer)
        if value is not None:
            timeout_kwargs[key] = value
    http_compress = _to_bool(entry.get("http_compress"), "http_compress")
    if http_compress is not None:
        timeout_kwargs["http_compress"] = http_compress

    return ClusterConfig(
        name=name,
        hosts=_to_hosts(entry),
        auth=auth,
        tls=tls,
        timeouts=TimeoutConfig(**timeout_kwargs),
        index_policy=IndexPolicy(
            default_index=_to_str(entry.get("default_index"), "default_index"),
            index_prefix=_to_str(entry.get("index_prefix"), "index_prefix"),
        ),
    )


# ============================================================
# 解析规则
# ============================================================


def _entry_from_env(environ: Mapping[str, str]) -> dict[str, Any]:
    """由单集群环境变量构造原始配置字典."""
    verify = _env(environ, EnvVars.VERIFY_CERTS)
    return {
        "url": _env(environ, EnvVars.URL) or _env(environ, EnvVars.NODE),
        "nodes": _env(environ, EnvVars.NODES),
        "auth": {
            "username": _env(environ, EnvVars.USERNAME),
            "password": _env(environ, EnvVars.PASSWORD),
            "api_key": _env(environ, EnvVars.API_KEY),
            "aws_region": _env(environ, EnvVars.AWS_REGION),
            "aws_service": _env(environ, EnvVars.AWS_SERVICE),
        },
        "tls": {
            # 只有显式设置为 false 才关闭证书校验
            "verify_certs": verify is None or verify.lower() != "false",
            "ca_certs": _env(environ, EnvVars.CA_CERT_PATH),
            "ca_bundle": _env(environ, EnvVars.CA_BUNDLE),
            "client_cert": _env(environ, EnvVars.CLIENT_CERT),
            "client_key": _env(environ, EnvVars.CLIENT_KEY),
        },
        "request_timeout": _env(environ, EnvVars.REQUEST_TIMEOUT),
        "ping_timeout": _env(environ, EnvVars.PING_TIMEOUT),
        "max_retries": _env(environ, EnvVars.MAX_RETRIES),
        "default_index": _env(environ, EnvVars.DEFAULT_INDEX),
        "index_prefix": _env(environ, EnvVars.INDEX_PREFIX),
    }


def _has_endpoint(environ: Mapping[str, str]) -> bool:
    return bool(_env(environ, EnvVars.URL) or _env(environ, EnvVars.NODE))


def named_cluster_rule(environ: Mapping[str, str]) -> RawClusters | None:
    """命名单集群: 同时设置了集群名和节点地址."""
    name = _env(environ, EnvVars.CLUSTER_NAME)
    if not name:
        return None
    if not _has_endpoint(environ):
        logger.warning(
            f"设置了 {EnvVars.CLUSTER_NAME}={name} 但缺少 "
            f"{EnvVars.URL}/{EnvVars.NODE}，忽略该集群名"
        )
        return None
    return {name: _entry_from_env(environ)}


def bulk_clusters_rule(environ: Mapping[str, str]) -> RawClusters | None:
    """多集群声明: ES_CLUSTERS 为 JSON 对象 {集群名: 配置}.

    JSON 格式错误或不是对象时记录警告并视为未设置。
    """
    raw = _env(environ, EnvVars.CLUSTERS)
    if not raw:
        return None
    try:
        clusters = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"解析 {EnvVars.CLUSTERS} 失败: {e}，回退到旧版单集群配置")
        return None
    if not isinstance(clusters, dict):
        logger.warning(
            f"{EnvVars.CLUSTERS} 必须是 JSON 对象，当前类型: "
            f"{type(clusters).__name__}，回退到旧版单集群配置"
        )
        return None
    return clusters or None


def legacy_cluster_rule(environ: Mapping[str, str]) -> RawClusters | None:
    """旧版单集群: 只有节点地址，使用固定名称 "default"."""
    if not _has_endpoint(environ):
        return None
    return {DEFAULT_CLUSTER_NAME: _entry_from_env(environ)}


DEFAULT_RULES: tuple[Rule, ...] = (
    named_cluster_rule,
    bulk_clusters_rule,
    legacy_cluster_rule,
)


class ConfigResolver:
    """配置解析器.

    按顺序尝试各条规则，第一条给出集群定义的规则生效。
    每个条目单独校验，不合法的条目记录警告后丢弃。

    Args:
        rules: 有序的解析规则，默认 DEFAULT_RULES
    """

    def __init__(self, rules: tuple[Rule, ...] = DEFAULT_RULES) -> None:
        self.rules = rules

    def resolve(self, environ: Mapping[str, str] | None = None) -> CanonicalConfig:
        """解析配置.

        Args:
            environ: 环境变量映射，默认为空映射

        Returns:
            规范化配置；没有任何可识别的配置来源时返回空配置

        Raises:
            ConfigInvalidError: 生效的配置来源中没有任何合法条目时抛出
        """
        environ = environ if environ is not None else {}

        raw_clusters: RawClusters | None = None
        for rule in self.rules:
            raw_clusters = rule(environ)
            if raw_clusters:
                logger.info(
                    f"使用配置规则 {rule.__name__}，声明了 {len(raw_clusters)} 个集群"
                )
                break
        else:
            logger.warning("未找到任何集群配置")
            return CanonicalConfig()

        clusters: dict[str, ClusterConfig] = {}
        for name, entry in raw_clusters.items():
            try:
                clusters[name] = build_cluster_config(name, entry)
            except ConnectionConfigError as e:
                logger.warning(f"跳过无效集群配置 '{name}': {e}")

        if not clusters:
            raise ConfigInvalidError(
                f"声明的 {len(raw_clusters)} 个集群配置均无效: "
                f"{', '.join(str(n) for n in raw_clusters)}"
            )

        default_cluster = _env(environ, EnvVars.DEFAULT_CLUSTER)
        if default_cluster and default_cluster not in clusters:
            logger.warning(
                f"默认集群 '{default_cluster}' 不在已解析的集群中，"
                f"将使用第一个可用集群"
            )
            default_cluster = None

        return CanonicalConfig(clusters=clusters, default_cluster=default_cluster)


def resolve_config(environ: Mapping[str, str] | None = None) -> CanonicalConfig:
    """使用默认规则解析配置."""
    return ConfigResolver().resolve(environ)
