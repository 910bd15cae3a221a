"""Syntax tree nodes produced by the SQL parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto


class JoinType(Enum):
    INNER = auto()
    LEFT = auto()
    RIGHT = auto()
    FULL = auto()


class SvType(Enum):
    INT = auto()
    FLOAT = auto()
    STRING = auto()


class SvCompOp(Enum):
    EQ = auto()
    NE = auto()
    LT = auto()
    GT = auto()
    LE = auto()
    GE = auto()


class OrderByDir(Enum):
    DEFAULT = auto()
    ASC = auto()
    DESC = auto()


@dataclass
class TreeNode:
    """Base class of every syntax tree node."""


@dataclass
class Help(TreeNode):
    pass


@dataclass
class ShowTables(TreeNode):
    pass


@dataclass
class TxnBegin(TreeNode):
    pass


@dataclass
class TxnCommit(TreeNode):
    pass


@dataclass
class TxnAbort(TreeNode):
    pass


@dataclass
class TxnRollback(TreeNode):
    pass


@dataclass
class TypeLen(TreeNode):
    """A column type together with its length in bytes."""

    type: SvType
    len: int


@dataclass
class Field(TreeNode):
    """Base class of the entries of a table definition."""


@dataclass
class ColDef(Field):
    col_name: str
    type_len: TypeLen


@dataclass
class CreateTable(TreeNode):
    tab_name: str
    fields: list[Field] = field(default_factory=list)


@dataclass
class DropTable(TreeNode):
    tab_name: str


@dataclass
class DescTable(TreeNode):
    tab_name: str


@dataclass
class CreateIndex(TreeNode):
    tab_name: str
    col_names: list[str] = field(default_factory=list)


@dataclass
class DropIndex(TreeNode):
    tab_name: str
    col_names: list[str] = field(default_factory=list)


@dataclass
class Expr(TreeNode):
    """Base class of expressions."""


@dataclass
class Value(Expr):
    """Base class of literal values."""


@dataclass
class IntLit(Value):
    val: int


@dataclass
class FloatLit(Value):
    val: float


@dataclass
class StringLit(Value):
    val: str


@dataclass
class Col(Expr):
    """A column reference; tab_name is empty when the table is not given."""

    tab_name: str
    col_name: str


@dataclass
class SetClause(TreeNode):
    col_name: str
    val: Value


@dataclass
class BinaryExpr(TreeNode):
    lhs: Col
    op: SvCompOp
    rhs: Expr


@dataclass
class OrderBy(TreeNode):
    cols: Col
    orderby_dir: OrderByDir = OrderByDir.DEFAULT


@dataclass
class InsertStmt(TreeNode):
    tab_name: str
    vals: list[Value] = field(default_factory=list)


@dataclass
class DeleteStmt(TreeNode):
    tab_name: str
    conds: list[BinaryExpr] = field(default_factory=list)


@dataclass
class UpdateStmt(TreeNode):
    tab_name: str
    set_clauses: list[SetClause] = field(default_factory=list)
    conds: list[BinaryExpr] = field(default_factory=list)


@dataclass
class JoinExpr(TreeNode):
    left: str
    right: str
    conds: list[BinaryExpr] = field(default_factory=list)
    type: JoinType = JoinType.INNER


@dataclass
class SelectStmt(TreeNode):
    cols: list[Col] = field(default_factory=list)
    tabs: list[str] = field(default_factory=list)
    conds: list[BinaryExpr] = field(default_factory=list)
    order: OrderBy | None = None
    jointree: list[JoinExpr] = field(default_factory=list)

    @property
    def has_sort(self) -> bool:
        """True if the statement has an ORDER BY clause."""
        return self.order is not None