"""提示模板模块.

提供查询构建、聚合构建和映射设计三个 MCP 提示模板。模板只生成
引导文本，不访问集群。
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass

from .dispatch.catalog import OPERATION_PREFIX
from .exceptions import InvalidArgumentsError


@dataclass(frozen=True)
class PromptArgument:
    """提示参数声明."""

    name: str
    description: str
    required: bool = False


@dataclass(frozen=True)
class PromptTemplate:
    """提示模板.

    Attributes:
        name: 提示名（唯一）
        title: 渲染结果的标题
        description: 提示说明
        arguments: 参数声明
        render: 由参数字典生成提示文本的函数
    """

    name: str
    title: str
    description: str
    arguments: tuple[PromptArgument, ...]
    render: Callable[[Mapping[str, str]], str]

    def bind(self, arguments: Mapping[str, str] | None) -> dict[str, str]:
        """校验必需参数，去掉空值."""
        values = {key: value for key, value in (arguments or {}).items() if value}
        for argument in self.arguments:
            if argument.required and argument.name not in values:
                raise InvalidArgumentsError(
                    f"提示 '{self.name}' 缺少必需参数 '{argument.name}'",
                    field=argument.name,
                )
        return values


def _lines(*lines: str | None) -> str:
    return "\n".join(line for line in lines if line is not None)


def _render_query(args: Mapping[str, str]) -> str:
    return _lines(
        f"请帮我构建一个 Elasticsearch 查询，搜索内容: \"{args['search_terms']}\"",
        f"目标索引: {args['index_pattern']}" if "index_pattern" in args else None,
        f"附加过滤条件: {args['filters']}" if "filters" in args else None,
        "",
        "请给出:",
        f"1. 使用查询字符串语法的基础查询（可直接作为 {OPERATION_PREFIX}search 的 q 参数）",
        f"2. 使用查询 DSL 的进阶查询（可直接作为 {OPERATION_PREFIX}search 的 query 参数）",
        "3. 性能方面的最佳实践",
        "4. 提升搜索相关性的建议",
    )


def _render_aggregation(args: Mapping[str, str]) -> str:
    return _lines(
        "请帮我构建一个 Elasticsearch 聚合查询:",
        f"- 聚合类型: {args['metric_type']}",
        f"- 字段: {args['field_name']}",
        f"- 索引: {args['index_pattern']}" if "index_pattern" in args else None,
        "",
        "请给出:",
        f"1. JSON 格式的聚合定义（可直接作为 {OPERATION_PREFIX}aggregate 的 aggregations 参数）",
        "2. 该聚合的作用说明",
        "3. 性能方面的注意事项",
        "4. 其他有用的聚合建议",
    )


def _render_mapping(args: Mapping[str, str]) -> str:
    return _lines(
        "请帮我为以下数据设计合适的字段映射:",
        "",
        "数据样例:",
        args["data_sample"],
        "",
        f"使用场景: {args['use_case']}" if "use_case" in args else None,
        "请给出:",
        f"1. JSON 格式的映射定义（可直接用于 {OPERATION_PREFIX}create_index 的 mappings 参数）",
        "2. 各字段映射选择的理由",
        "3. 索引设置建议",
        "4. 性能与存储方面的注意事项",
    )


_INDEX_PATTERN = PromptArgument("index_pattern", "索引名称或通配模式，例如 'logs-*'")

PROMPTS: dict[str, PromptTemplate] = {
    template.name: template
    for template in (
        PromptTemplate(
            name=f"{OPERATION_PREFIX}query_builder",
            title="Elasticsearch Query Builder",
            description="按最佳实践构建语法正确的 Elasticsearch 查询",
            arguments=(
                PromptArgument("search_terms", "要搜索的内容", required=True),
                _INDEX_PATTERN,
                PromptArgument("filters", "附加过滤条件（JSON 格式）"),
            ),
            render=_render_query,
        ),
        PromptTemplate(
            name=f"{OPERATION_PREFIX}aggregation_builder",
            title="Elasticsearch Aggregation Builder",
            description="构建用于统计分析的 Elasticsearch 聚合查询",
            arguments=(
                PromptArgument(
                    "metric_type",
                    "聚合类型（avg、sum、terms、date_histogram 等）",
                    required=True,
                ),
                PromptArgument("field_name", "聚合字段", required=True),
                _INDEX_PATTERN,
            ),
            render=_render_aggregation,
        ),
        PromptTemplate(
            name=f"{OPERATION_PREFIX}mapping_design",
            title="Elasticsearch Mapping Design",
            description="为索引设计合适的字段映射",
            arguments=(
                PromptArgument("data_sample", "待写入数据的样例（JSON 格式）", required=True),
                PromptArgument("use_case", "计划如何搜索或分析这些数据"),
            ),
            render=_render_mapping,
        ),
    )
}


def render_prompt(name: str, arguments: Mapping[str, str] | None = None) -> tuple[str, str]:
    """渲染提示.

    Args:
        name: 提示名
        arguments: 提示参数

    Returns:
        (标题, 提示文本)

    Raises:
        ValueError: 提示不存在时抛出
        InvalidArgumentsError: 缺少必需参数时抛出
    """
    template = PROMPTS.get(name)
    if template is None:
        raise ValueError(f"未知提示: {name}")
    return template.title, template.render(template.bind(arguments))
