"""后端连接工具模块.

提供 BackendConnection 类，将一个已校验的 ClusterConfig 包装为
Elasticsearch 客户端句柄，并暴露存活探测和统一的操作接口
（搜索、文档增删改查、索引管理、集群管理、安全管理）。

使用示例:
    from elasticmcp.connection import BackendConnection, ClusterConfig

    conn = BackendConnection(ClusterConfig(name="local", hosts=("http://localhost:9200",)))
    if conn.probe():
        result = conn.search(index="logs", query={"match_all": {}})
    conn.close()
"""

from __future__ import annotations

import logging
import ssl
from typing import Any

from elasticsearch import Elasticsearch

from .exceptions import BackendConnectionError
from .models import ClusterConfig

logger = logging.getLogger(__name__)

_BULK_ACTIONS = ("index", "create", "update", "delete")


def _compact(**kwargs: Any) -> dict[str, Any]:
    """去掉值为 None 的参数."""
    return {key: value for key, value in kwargs.items() if value is not None}


def _body(response: Any) -> Any:
    """从客户端响应中取出 JSON 兼容的响应体."""
    return getattr(response, "body", response)


class BackendConnection:
    """单个集群的后端连接.

    构造时即创建客户端，但不做存活探测；由 ClusterRegistry 在构建时
    调用 probe()。构造后配置不可变。

    Attributes:
        config: 集群配置
        is_alive: 最近一次存活探测的结果，未探测时为 False

    Raises:
        BackendConnectionError: 客户端无法按配置创建时抛出
    """

    def __init__(self, config: ClusterConfig) -> None:
        self.config = config
        self.is_alive = False
        self._client = self._create_client(config)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def client(self) -> Elasticsearch:
        return self._client

    def _create_client(self, config: ClusterConfig) -> Elasticsearch:
        """根据集群配置创建 Elasticsearch 客户端实例.

        根据认证方式（Basic Auth / API Key / 无认证）和 TLS 配置构建客户端。
        TLS 参数仅在存在 https 节点时传递。

        Args:
            config: 单个集群的配置信息

        Returns:
            Elasticsearch 客户端实例
        """
        timeouts = config.timeouts
        kwargs: dict[str, Any] = {
            "hosts": list(config.hosts),
            "request_timeout": timeouts.request_timeout,
            "max_retries": timeouts.max_retries,
            "retry_on_timeout": timeouts.max_retries > 0,
            "http_compress": timeouts.http_compress,
        }

        auth = config.auth
        if auth.has_iam:
            # elasticsearch 传输层没有请求签名器，只能退回到其他认证方式
            if auth.has_basic_auth or auth.api_key:
                logger.warning(
                    f"集群 '{config.name}' 配置了云 IAM 认证 (region={auth.aws_region})，"
                    f"当前传输层不支持请求签名，改用其他已配置的认证方式"
                )
            else:
                raise BackendConnectionError(
                    f"集群 '{config.name}' 仅配置了云 IAM 认证 "
                    f"(region={auth.aws_region}, service={auth.aws_service})，"
                    f"当前传输层不支持请求签名"
                )

        # 客户端只接受一种凭据，Basic Auth 优先于 API Key
        if auth.has_basic_auth:
            kwargs["basic_auth"] = (auth.username, auth.password)
            if auth.api_key:
                logger.warning(
                    f"集群 '{config.name}' 同时配置了 Basic Auth 和 API Key，忽略 API Key"
                )
        elif auth.api_key:
            kwargs["api_key"] = auth.api_key

        # SSL/TLS 配置
        if any(host.startswith("https") for host in config.hosts):
            kwargs.update(self._tls_kwargs(config))

        return Elasticsearch(**kwargs)

    @staticmethod
    def _tls_kwargs(config: ClusterConfig) -> dict[str, Any]:
        tls = config.tls
        if tls.ca_bundle:
            # PEM 内容只能通过 SSLContext 传入，此时不能再传其他 TLS 参数
            context = ssl.create_default_context(cadata=tls.ca_bundle)
            if tls.ca_certs:
                context.load_verify_locations(cafile=tls.ca_certs)
            if tls.client_cert:
                context.load_cert_chain(tls.client_cert, tls.client_key)
            if not tls.verify_certs:
                context.check_hostname = False
                context.verify_mode = ssl.CERT_NONE
            return {"ssl_context": context}

        kwargs: dict[str, Any] = {"verify_certs": tls.verify_certs}
        if not tls.verify_certs:
            kwargs["ssl_show_warn"] = False
        if tls.ca_certs:
            kwargs["ca_certs"] = tls.ca_certs
        if tls.client_cert:
            kwargs["client_cert"] = tls.client_cert
        if tls.client_key:
            kwargs["client_key"] = tls.client_key
        return kwargs

    # ============================================================
    # 生命周期管理
    # ============================================================

    def probe(self) -> bool:
        """存活探测.

        使用较短的 ping_timeout 调用一次 ping()，不重试，任何异常都视为不可达。

        Returns:
            集群可达时返回 True
        """
        try:
            alive = bool(
                self._client.options(
                    request_timeout=self.config.timeouts.ping_timeout,
                    max_retries=0,
                    retry_on_timeout=False,
                ).ping()
            )
        except Exception as e:
            logger.warning(f"集群 '{self.name}' 存活探测失败: {e}")
            alive = False
        self.is_alive = alive
        return alive

    def close(self) -> None:
        """关闭底层客户端连接."""
        self._client.close()
        self.is_alive = False

    def __enter__(self) -> BackendConnection:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"BackendConnection(name={self.name!r}, endpoint={self.config.endpoint!r})"

    # ============================================================
    # 索引命名
    # ============================================================

    def _index(self, index: Any) -> Any:
        return self.config.index_policy.apply(index)

    def _search_index(self, index: Any) -> Any:
        return self.config.index_policy.resolve(index)

    def _prefix_bulk_operations(self, operations: list[Any]) -> list[Any]:
        """为 bulk 操作行中的 _index 添加前缀.

        操作行之后紧跟的文档行（delete 除外）原样保留。
        """
        if not self.config.index_policy.index_prefix:
            return operations

        result: list[Any] = []
        expect_source = False
        for item in operations:
            if expect_source:
                result.append(item)
                expect_source = False
                continue
            if isinstance(item, dict) and len(item) == 1:
                action, meta = next(iter(item.items()))
                if action in _BULK_ACTIONS and isinstance(meta, dict):
                    if "_index" in meta:
                        meta = {**meta, "_index": self._index(meta["_index"])}
                    result.append({action: meta})
                    expect_source = action != "delete"
                    continue
            result.append(item)
        return result

    # ============================================================
    # 搜索
    # ============================================================

    def search(
        self,
        index: str | list[str] | None = None,
        query: dict | None = None,
        q: str | None = None,
        size: int | None = None,
        from_: int | None = None,
        sort: Any = None,
        source: Any = None,
        highlight: dict | None = None,
        aggregations: dict | None = None,
    ) -> dict:
        """搜索文档.

        未指定索引时使用集群配置的默认索引，两者都为空时搜索全部索引。
        """
        response = self._client.search(
            **_compact(
                index=self._search_index(index),
                query=query,
                q=q,
                size=size,
                from_=from_,
                sort=sort,
                source=source,
                highlight=highlight,
                aggregations=aggregations,
            )
        )
        return _body(response)

    def aggregate(
        self,
        index: str | list[str],
        aggregations: dict,
        query: dict | None = None,
        size: int = 0,
    ) -> dict:
        """执行聚合查询.

        Returns:
            包含 aggregations、命中总数和（size > 0 时）命中文档的字典
        """
        body = self.search(
            index=index,
            aggregations=aggregations,
            query=query,
            size=size,
        )
        hits = body.get("hits", {})
        return {
            "aggregations": body.get("aggregations", {}),
            "total": hits.get("total"),
            "hits": hits.get("hits", []),
        }

    def count(
        self, index: str | list[str] | None = None, query: dict | None = None
    ) -> dict:
        """统计匹配查询的文档数."""
        response = self._client.count(
            **_compact(index=self._search_index(index), query=query)
        )
        return _body(response)

    # ============================================================
    # 文档管理
    # ============================================================

    def index_document(
        self,
        index: str,
        document: dict,
        id: str | None = None,
        refresh: Any = None,
        routing: str | None = None,
        pipeline: str | None = None,
    ) -> dict:
        """写入单个文档，未指定 id 时自动生成."""
        response = self._client.index(
            **_compact(
                index=self._index(index),
                document=document,
                id=id,
                refresh=refresh,
                routing=routing,
                pipeline=pipeline,
            )
        )
        return _body(response)

    def bulk(
        self,
        operations: list[dict],
        index: str | None = None,
        refresh: Any = None,
        pipeline: str | None = None,
    ) -> dict:
        """批量操作.

        Returns:
            包含 took、errors、items 的原始响应体
        """
        response = self._client.bulk(
            **_compact(
                operations=self._prefix_bulk_operations(operations),
                index=self._index(index),
                refresh=refresh,
                pipeline=pipeline,
            )
        )
        body = _body(response)
        if body.get("errors"):
            failed = sum(
                1
                for item in body.get("items", [])
                for result in item.values()
                if result.get("error")
            )
            logger.warning(f"集群 '{self.name}' 批量操作存在 {failed} 个失败项")
        return body

    def get_document(
        self,
        index: str,
        id: str,
        source: Any = None,
        routing: str | None = None,
    ) -> dict:
        """按 ID 获取文档."""
        response = self._client.get(
            **_compact(index=self._index(index), id=id, source=source, routing=routing)
        )
        return _body(response)

    def update_document(
        self,
        index: str,
        id: str,
        doc: dict | None = None,
        script: Any = None,
        upsert: dict | None = None,
        doc_as_upsert: bool | None = None,
        refresh: Any = None,
        retry_on_conflict: int | None = None,
    ) -> dict:
        """局部更新文档（doc 或 script 二选一）."""
        response = self._client.update(
            **_compact(
                index=self._index(index),
                id=id,
                doc=doc,
                script=script,
                upsert=upsert,
                doc_as_upsert=doc_as_upsert,
                refresh=refresh,
                retry_on_conflict=retry_on_conflict,
            )
        )
        return _body(response)

    def delete_document(
        self,
        index: str,
        id: str,
        refresh: Any = None,
        routing: str | None = None,
    ) -> dict:
        """按 ID 删除文档."""
        response = self._client.delete(
            **_compact(index=self._index(index), id=id, refresh=refresh, routing=routing)
        )
        return _body(response)

    # ============================================================
    # 索引管理
    # ============================================================

    def list_indices(
        self,
        index: str | None = None,
        health: str | None = None,
        sort: str | None = None,
    ) -> list:
        """列出索引（_cat/indices 的 JSON 格式）."""
        response = self._client.cat.indices(
            **_compact(index=self._index(index), health=health, s=sort, format="json")
        )
        return _body(response)

    def index_stats(self, index: str | None = None) -> dict:
        response = self._client.indices.stats(**_compact(index=self._index(index)))
        return _body(response)

    def create_index(
        self,
        index: str,
        settings: dict | None = None,
        mappings: dict | None = None,
        aliases: dict | None = None,
    ) -> dict:
        """创建索引."""
        response = self._client.indices.create(
            **_compact(
                index=self._index(index),
                settings=settings,
                mappings=mappings,
                aliases=aliases,
            )
        )
        return _body(response)

    def delete_index(self, index: str) -> dict:
        """删除索引."""
        if "*" in index or "?" in index:
            logger.warning(f"索引名称 '{index}' 包含通配符，可能会删除多个索引！")
        response = self._client.indices.delete(index=self._index(index))
        return _body(response)

    def index_exists(self, index: str) -> dict:
        name = self._index(index)
        exists = bool(self._client.indices.exists(index=name))
        return {"index": name, "exists": exists}

    def refresh_index(self, index: str | None = None) -> dict:
        response = self._client.indices.refresh(**_compact(index=self._index(index)))
        return _body(response)

    def get_mapping(self, index: str | None = None) -> dict:
        response = self._client.indices.get_mapping(
            **_compact(index=self._index(index))
        )
        return _body(response)

    def put_mapping(self, index: str, mappings: dict) -> dict:
        """更新索引映射."""
        response = self._client.indices.put_mapping(
            index=self._index(index), body=mappings
        )
        return _body(response)

    # ============================================================
    # 集群管理
    # ============================================================

    def info(self) -> dict:
        """集群基本信息（版本、构建信息等）."""
        return _body(self._client.info())

    def cluster_health(
        self,
        index: str | None = None,
        level: str | None = None,
        wait_for_status: str | None = None,
        timeout: str | None = None,
    ) -> dict:
        response = self._client.cluster.health(
            **_compact(
                index=self._index(index),
                level=level,
                wait_for_status=wait_for_status,
                timeout=timeout,
            )
        )
        return _body(response)

    def cluster_stats(self) -> dict:
        return _body(self._client.cluster.stats())

    # ============================================================
    # 安全管理（用户、角色、角色映射）
    # ============================================================

    def get_user(self, username: str | list[str] | None = None) -> dict:
        return _body(self._client.security.get_user(**_compact(username=username)))

    def put_user(
        self,
        username: str,
        password: str | None = None,
        roles: list[str] | None = None,
        full_name: str | None = None,
        email: str | None = None,
        metadata: dict | None = None,
        enabled: bool | None = None,
    ) -> dict:
        """创建或更新用户."""
        response = self._client.security.put_user(
            **_compact(
                username=username,
                password=password,
                roles=roles,
                full_name=full_name,
                email=email,
                metadata=metadata,
                enabled=enabled,
            )
        )
        return _body(response)

    def delete_user(self, username: str) -> dict:
        return _body(self._client.security.delete_user(username=username))

    def get_role(self, name: str | list[str] | None = None) -> dict:
        return _body(self._client.security.get_role(**_compact(name=name)))

    def put_role(
        self,
        name: str,
        cluster: list[str] | None = None,
        indices: list[dict] | None = None,
        applications: list[dict] | None = None,
        run_as: list[str] | None = None,
        metadata: dict | None = None,
    ) -> dict:
        """创建或更新角色."""
        response = self._client.security.put_role(
            **_compact(
                name=name,
                cluster=cluster,
                indices=indices,
                applications=applications,
                run_as=run_as,
                metadata=metadata,
            )
        )
        return _body(response)

    def delete_role(self, name: str) -> dict:
        return _body(self._client.security.delete_role(name=name))

    def get_role_mapping(self, name: str | list[str] | None = None) -> dict:
        return _body(self._client.security.get_role_mapping(**_compact(name=name)))

    def put_role_mapping(
        self,
        name: str,
        roles: list[str] | None = None,
        rules: dict | None = None,
        enabled: bool | None = None,
        metadata: dict | None = None,
    ) -> dict:
        """创建或更新角色映射."""
        response = self._client.security.put_role_mapping(
            **_compact(
                name=name,
                roles=roles,
                rules=rules,
                enabled=enabled,
                metadata=metadata,
            )
        )
        return _body(response)

    def delete_role_mapping(self, name: str) -> dict:
        return _body(self._client.security.delete_role_mapping(name=name))
