"""后端连接数据模型定义模块.

提供集群连接相关的数据模型，包括：
- AuthConfig: 认证信息
- TlsConfig: TLS 配置
- TimeoutConfig: 超时与重试配置
- IndexPolicy: 索引命名策略
- ClusterConfig: 单个集群的完整连接描述
- CanonicalConfig: 集群名到 ClusterConfig 的有序映射

所有模型构造后不可变，校验在 __post_init__ 中完成。
"""

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

from .exceptions import ConnectionConfigError

_ALLOWED_SCHEMES = ("http", "https")


def _validate_url(url: str) -> None:
    """校验 URL 语法合法性（scheme 为 http/https 且包含主机名）."""
    if not isinstance(url, str) or not url.strip():
        raise ConnectionConfigError("节点地址不能为空")
    try:
        parsed = urlparse(url)
        # 访问 port 会校验端口号格式
        parsed.port
    except ValueError as e:
        raise ConnectionConfigError(f"节点地址 '{url}' 格式错误: {e}") from e
    if parsed.scheme not in _ALLOWED_SCHEMES or not parsed.hostname:
        raise ConnectionConfigError(
            f"节点地址 '{url}' 不是合法的 URL，需要 http:// 或 https:// 开头"
        )


@dataclass(frozen=True)
class AuthConfig:
    """认证信息.

    多种认证方式可以同时配置，全部为空时使用匿名访问。

    Attributes:
        username: Basic Auth 用户名
        password: Basic Auth 密码
        api_key: API Key
        aws_region: 云 IAM 认证区域
        aws_service: 云 IAM 服务名，仅在设置了 aws_region 时生效
    """

    username: str | None = None
    password: str | None = None
    api_key: str | None = None
    aws_region: str | None = None
    aws_service: str | None = None

    @property
    def has_basic_auth(self) -> bool:
        return bool(self.username and self.password)

    @property
    def has_iam(self) -> bool:
        return bool(self.aws_region)

    @property
    def is_anonymous(self) -> bool:
        return not (self.has_basic_auth or self.api_key or self.has_iam)


@dataclass(frozen=True)
class TlsConfig:
    """TLS 配置.

    Attributes:
        verify_certs: 是否校验对端证书，默认 True
        ca_certs: CA 证书文件路径
        ca_bundle: PEM 格式的 CA 证书内容
        client_cert: 客户端证书文件路径
        client_key: 客户端私钥文件路径
    """

    verify_certs: bool = True
    ca_certs: str | None = None
    ca_bundle: str | None = None
    client_cert: str | None = None
    client_key: str | None = None

    def __post_init__(self) -> None:
        if self.client_key and not self.client_cert:
            raise ConnectionConfigError("配置了 client_key 但缺少 client_cert")


@dataclass(frozen=True)
class TimeoutConfig:
    """超时与重试配置.

    Attributes:
        request_timeout: 请求超时时间（秒），默认 30
        ping_timeout: 存活探测超时时间（秒），默认 3
        max_retries: 最大重试次数，默认 3
        http_compress: 是否启用 HTTP 压缩，默认 False
    """

    request_timeout: float = 30
    ping_timeout: float = 3
    max_retries: int = 3
    http_compress: bool = False

    def __post_init__(self) -> None:
        """校验数值参数非负."""
        for name in ("request_timeout", "ping_timeout", "max_retries"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConnectionConfigError(f"{name} 必须是数字，当前值: {value!r}")
            if value < 0:
                raise ConnectionConfigError(f"{name} 必须 >= 0，当前值: {value}")
        if not isinstance(self.max_retries, int):
            raise ConnectionConfigError(
                f"max_retries 必须是整数，当前值: {self.max_retries!r}"
            )


@dataclass(frozen=True)
class IndexPolicy:
    """索引命名策略.

    Attributes:
        default_index: 请求未指定索引时使用的默认索引（或索引模式）
        index_prefix: 自动加在每个索引参数前的前缀
    """

    default_index: str | None = None
    index_prefix: str | None = None

    def apply(self, index: Any) -> Any:
        """为索引名添加前缀.

        已带前缀的名称保持不变。支持字符串和字符串列表，其他值原样返回。

        Examples:
            >>> IndexPolicy(index_prefix="prod-").apply(["logs", "prod-metrics"])
            ['prod-logs', 'prod-metrics']
        """
        if not self.index_prefix or not index:
            return index
        if isinstance(index, str):
            return self._prefixed(index)
        if isinstance(index, (list, tuple)):
            return [self._prefixed(i) if isinstance(i, str) else i for i in index]
        return index

    def resolve(self, index: Any) -> Any:
        """未指定索引时回退到默认索引，然后应用前缀."""
        return self.apply(index or self.default_index)

    def _prefixed(self, name: str) -> str:
        if name.startswith(self.index_prefix):
            return name
        return f"{self.index_prefix}{name}"


@dataclass(frozen=True)
class ClusterConfig:
    """集群配置模型.

    定义单个集群的连接信息：节点地址、认证、TLS、超时和索引命名策略。

    Attributes:
        name: 集群名称，注册表内唯一
        hosts: 节点地址列表（必需，不可为空），第一个为主节点
        auth: 认证信息
        tls: TLS 配置
        timeouts: 超时与重试配置
        index_policy: 索引命名策略

    Raises:
        ConnectionConfigError: 名称为空、hosts 为空或包含非法 URL 时抛出

    Examples:
        >>> config = ClusterConfig(
        ...     name="prod",
        ...     hosts=("https://es.example.com:9200",),
        ...     auth=AuthConfig(username="elastic", password="changeme"),
        ... )
    """

    name: str
    hosts: tuple[str, ...] = ()
    auth: AuthConfig = field(default_factory=AuthConfig)
    tls: TlsConfig = field(default_factory=TlsConfig)
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    index_policy: IndexPolicy = field(default_factory=IndexPolicy)

    def __post_init__(self) -> None:
        """校验集群配置参数合法性."""
        if not isinstance(self.name, str) or not self.name.strip():
            raise ConnectionConfigError("集群名称不能为空")
        if isinstance(self.hosts, str):
            object.__setattr__(self, "hosts", (self.hosts,))
        elif not isinstance(self.hosts, tuple):
            object.__setattr__(self, "hosts", tuple(self.hosts))
        if not self.hosts:
            raise ConnectionConfigError(
                f"集群 '{self.name}' 的 hosts 不能为空，请提供至少一个节点地址"
            )
        for host in self.hosts:
            _validate_url(host)

    @property
    def endpoint(self) -> str:
        """主节点地址."""
        return self.hosts[0]


@dataclass(frozen=True)
class CanonicalConfig:
    """规范化配置.

    Attributes:
        clusters: 集群名到 ClusterConfig 的映射，按声明顺序排列
        default_cluster: 首选集群名称，未设置时为 None
    """

    clusters: dict[str, ClusterConfig] = field(default_factory=dict)
    default_cluster: str | None = None

    def __post_init__(self) -> None:
        # 悬空的默认集群名视为未设置
        if self.default_cluster is not None and self.default_cluster not in self.clusters:
            object.__setattr__(self, "default_cluster", None)

    @property
    def names(self) -> list[str]:
        return list(self.clusters)

    def __len__(self) -> int:
        return len(self.clusters)

    def __bool__(self) -> bool:
        return bool(self.clusters)
