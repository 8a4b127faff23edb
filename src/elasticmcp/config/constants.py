"""配置解析常量定义模块."""


class EnvVars:
    """识别的环境变量名."""

    # 命名单集群
    CLUSTER_NAME = "ES_CLUSTER_NAME"
    # 多集群 JSON 声明
    CLUSTERS = "ES_CLUSTERS"
    # 首选集群
    DEFAULT_CLUSTER = "ES_DEFAULT_CLUSTER"

    # 连接字段（命名单集群与旧版单集群共用）
    URL = "ES_URL"
    NODE = "ES_NODE"
    NODES = "ES_NODES"
    USERNAME = "ES_USERNAME"
    PASSWORD = "ES_PASSWORD"
    API_KEY = "ES_API_KEY"
    AWS_REGION = "AWS_REGION"
    AWS_SERVICE = "AWS_SERVICE"
    VERIFY_CERTS = "ES_VERIFY_CERTS"
    CA_CERT_PATH = "ES_CA_CERT_PATH"
    CA_BUNDLE = "ES_CA_BUNDLE"
    CLIENT_CERT = "ES_CLIENT_CERT"
    CLIENT_KEY = "ES_CLIENT_KEY"
    REQUEST_TIMEOUT = "ES_REQUEST_TIMEOUT"
    PING_TIMEOUT = "ES_PING_TIMEOUT"
    MAX_RETRIES = "ES_MAX_RETRIES"
    DEFAULT_INDEX = "ES_DEFAULT_INDEX"
    INDEX_PREFIX = "ES_INDEX_PREFIX"

    # 服务端
    LOG_LEVEL = "ES_MCP_LOG_LEVEL"


# 旧版单集群（未命名）使用的固定集群名
DEFAULT_CLUSTER_NAME = "default"

# 配置了云 IAM 区域但未指定服务名时使用的服务名
DEFAULT_AWS_SERVICE = "es"
