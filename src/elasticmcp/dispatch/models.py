"""操作分发数据模型定义模块.

提供:
    - FieldSpec: 单个参数的声明（JSON 类型、是否必需、枚举值、取值范围）
    - Operation: 操作目录中的一个操作（名称、参数声明、处理函数）
    - ok_envelope / error_envelope: 统一响应信封
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import ErrorKind, InvalidArgumentsError

# 集群选择参数名
CLUSTER_FIELD = "cluster"

_JSON_TYPE_CHECKS: dict[str, Callable[[Any], bool]] = {
    "string": lambda v: isinstance(v, str),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "object": lambda v: isinstance(v, Mapping),
    "array": lambda v: isinstance(v, (list, tuple)),
}


@dataclass(frozen=True)
class FieldSpec:
    """参数声明.

    Attributes:
        name: 对外的参数名
        types: 允许的 JSON 类型，取值为 string/integer/number/boolean/object/array
        required: 是否必需
        description: 参数说明
        param: 传给处理函数时使用的参数名，默认与 name 相同
        enum: 允许的取值
        minimum: 数值下限（含）
        maximum: 数值上限（含）
        default: 文档中展示的默认值，不会自动填充
    """

    name: str
    types: tuple[str, ...]
    required: bool = False
    description: str = ""
    param: str | None = None
    enum: tuple[Any, ...] | None = None
    minimum: float | None = None
    maximum: float | None = None
    default: Any = None

    def __post_init__(self) -> None:
        unknown = [t for t in self.types if t not in _JSON_TYPE_CHECKS]
        if not self.types or unknown:
            raise ValueError(f"参数 '{self.name}' 的类型声明无效: {self.types}")

    @property
    def param_name(self) -> str:
        return self.param or self.name

    def validate(self, value: Any) -> None:
        """浅层校验参数值.

        Raises:
            InvalidArgumentsError: 类型不匹配、不在枚举值中或超出取值范围时抛出
        """
        if not any(_JSON_TYPE_CHECKS[t](value) for t in self.types):
            raise InvalidArgumentsError(
                f"参数 '{self.name}' 类型错误，期望 {' 或 '.join(self.types)}，"
                f"实际为 {type(value).__name__}",
                field=self.name,
            )
        if self.required and isinstance(value, str) and not value.strip():
            raise InvalidArgumentsError(f"参数 '{self.name}' 不能为空", field=self.name)
        if self.enum is not None and value not in self.enum:
            raise InvalidArgumentsError(
                f"参数 '{self.name}' 的值 {value!r} 无效，可选值: "
                f"{', '.join(str(e) for e in self.enum)}",
                field=self.name,
            )
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if self.minimum is not None and value < self.minimum:
                raise InvalidArgumentsError(
                    f"参数 '{self.name}' 必须 >= {self.minimum}，当前值: {value}",
                    field=self.name,
                )
            if self.maximum is not None and value > self.maximum:
                raise InvalidArgumentsError(
                    f"参数 '{self.name}' 必须 <= {self.maximum}，当前值: {value}",
                    field=self.name,
                )

    def json_schema(self) -> dict[str, Any]:
        """生成该参数的 JSON Schema 片段."""
        schema: dict[str, Any] = {
            "type": self.types[0] if len(self.types) == 1 else list(self.types)
        }
        if self.description:
            schema["description"] = self.description
        if self.enum is not None:
            schema["enum"] = list(self.enum)
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        if self.default is not None:
            schema["default"] = self.default
        return schema


CLUSTER_FIELD_SPEC = FieldSpec(
    CLUSTER_FIELD,
    ("string",),
    description="目标集群名称，省略时使用默认集群",
)


@dataclass(frozen=True)
class Operation:
    """操作目录中的一个操作.

    Attributes:
        name: 操作名（唯一）
        description: 操作说明
        fields: 参数声明
        handler: 处理函数。cluster_selector 为 True 时签名为
            ``(BackendConnection, dict) -> Any``；uses_registry 为 True 时
            第一个参数是 ClusterRegistry
        cluster_selector: 是否接受 cluster 参数
        uses_registry: 处理函数是否直接操作注册表（用于内省类操作）
        check: 额外的参数交叉校验函数，校验失败时抛出 InvalidArgumentsError
    """

    name: str
    description: str
    handler: Callable[[Any, dict[str, Any]], Any]
    fields: tuple[FieldSpec, ...] = ()
    cluster_selector: bool = True
    uses_registry: bool = False
    check: Callable[[dict[str, Any]], None] | None = None

    def __post_init__(self) -> None:
        names = [f.name for f in self.fields]
        if len(names) != len(set(names)):
            raise ValueError(f"操作 '{self.name}' 存在重复的参数声明")
        if CLUSTER_FIELD in names:
            raise ValueError(f"操作 '{self.name}' 不能声明保留参数 '{CLUSTER_FIELD}'")

    @property
    def all_fields(self) -> tuple[FieldSpec, ...]:
        if self.cluster_selector:
            return self.fields + (CLUSTER_FIELD_SPEC,)
        return self.fields

    def bind(self, arguments: Any) -> tuple[str | None, dict[str, Any]]:
        """校验参数并拆分出集群选择参数.

        值为 None 的可选参数视为未传。

        Args:
            arguments: 调用方传入的参数对象

        Returns:
            (集群名或 None, 传给处理函数的参数字典)

        Raises:
            InvalidArgumentsError: 参数不是对象、存在未知参数、缺少必需参数
                或类型不匹配时抛出
        """
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, Mapping):
            raise InvalidArgumentsError(
                f"参数必须是对象，实际为 {type(arguments).__name__}"
            )

        specs = {spec.name: spec for spec in self.all_fields}
        unknown = sorted(set(arguments) - set(specs))
        if unknown:
            raise InvalidArgumentsError(
                f"操作 '{self.name}' 不支持参数: {', '.join(unknown)}",
                field=unknown[0],
            )

        cluster: str | None = None
        kwargs: dict[str, Any] = {}
        for spec in self.all_fields:
            value = arguments.get(spec.name)
            if value is None:
                if spec.required:
                    raise InvalidArgumentsError(
                        f"缺少必需参数 '{spec.name}'", field=spec.name
                    )
                continue
            spec.validate(value)
            if spec is CLUSTER_FIELD_SPEC:
                cluster = value
            else:
                kwargs[spec.param_name] = value

        if self.check is not None:
            self.check(kwargs)
        return cluster, kwargs

    def input_schema(self) -> dict[str, Any]:
        """生成参数的 JSON Schema（用于工具列表）."""
        schema: dict[str, Any] = {
            "type": "object",
            "properties": {spec.name: spec.json_schema() for spec in self.all_fields},
            "additionalProperties": False,
        }
        required = [spec.name for spec in self.all_fields if spec.required]
        if required:
            schema["required"] = required
        return schema


def ok_envelope(result: Any) -> dict[str, Any]:
    """成功响应信封."""
    return {"status": "ok", "result": result}


def error_envelope(kind: ErrorKind, message: str) -> dict[str, Any]:
    """失败响应信封."""
    return {"status": "error", "code": kind.value, "message": message}


@dataclass
class OperationCatalog:
    """操作目录.

    按名称索引的静态操作集合，保持注册顺序。
    """

    operations: dict[str, Operation] = field(default_factory=dict)

    @classmethod
    def of(cls, *operations: Operation) -> "OperationCatalog":
        catalog = cls()
        for operation in operations:
            if operation.name in catalog.operations:
                raise ValueError(f"重复的操作名: {operation.name}")
            catalog.operations[operation.name] = operation
        return catalog

    def get(self, name: str) -> Operation | None:
        return self.operations.get(name)

    def names(self) -> list[str]:
        return list(self.operations)

    def __iter__(self):
        return iter(self.operations.values())

    def __len__(self) -> int:
        return len(self.operations)

    def __contains__(self, name: object) -> bool:
        return name in self.operations
