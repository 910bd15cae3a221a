import pytest

from rmdb.ast import (
    BinaryExpr,
    Col,
    ColDef,
    CreateIndex,
    CreateTable,
    DeleteStmt,
    DescTable,
    DropIndex,
    DropTable,
    Expr,
    Field,
    FloatLit,
    Help,
    InsertStmt,
    IntLit,
    SelectStmt,
    SetClause,
    ShowTables,
    StringLit,
    SvCompOp,
    SvType,
    TxnAbort,
    TxnBegin,
    TxnCommit,
    TxnRollback,
    TypeLen,
    UpdateStmt,
)
from rmdb.ast_printer import format_tree, print_tree


@pytest.mark.parametrize(
    "node, text",
    [
        (Help(), "HELP\n"),
        (ShowTables(), "SHOW_TABLES\n"),
        (TxnBegin(), "BEGIN\n"),
        (TxnCommit(), "COMMIT\n"),
        (TxnAbort(), "ABORT\n"),
        (TxnRollback(), "ROLLBACK\n"),
    ],
)
def test_simple_statements(node, text):
    assert format_tree(node) == text


def test_desc_and_drop_table():
    assert format_tree(DescTable("tb")) == "DESC_TABLE\n  tb\n"
    assert format_tree(DropTable("tb")) == "DROP_TABLE\n  tb\n"


def test_create_table():
    node = CreateTable(
        "tb",
        [
            ColDef("a", TypeLen(SvType.INT, 4)),
            ColDef("b", TypeLen(SvType.FLOAT, 4)),
            ColDef("c", TypeLen(SvType.STRING, 4)),
        ],
    )
    expected = (
        "CREATE_TABLE\n"
        "  tb\n"
        "  LIST\n"
        "    COL_DEF\n"
        "      a\n"
        "      TYPE_LEN\n"
        "        INT\n"
        "        4\n"
        "    COL_DEF\n"
        "      b\n"
        "      TYPE_LEN\n"
        "        FLOAT\n"
        "        4\n"
        "    COL_DEF\n"
        "      c\n"
        "      TYPE_LEN\n"
        "        STRING\n"
        "        4\n"
    )
    assert format_tree(node) == expected


def test_create_and_drop_index():
    assert format_tree(CreateIndex("tb", ["a", "b", "c"])) == (
        "CREATE_INDEX\n  tb\n  a\n  b\n  c\n"
    )
    assert format_tree(DropIndex("tb", ["b"])) == "DROP_INDEX\n  tb\n  b\n"


def test_insert():
    node = InsertStmt("tb", [IntLit(1), FloatLit(3.14), StringLit("pi")])
    expected = (
        "INSERT\n"
        "  tb\n"
        "  LIST\n"
        "    INT_LIT\n"
        "      1\n"
        "    FLOAT_LIT\n"
        "      3.14\n"
        "    STRING_LIT\n"
        "      pi\n"
    )
    assert format_tree(node) == expected


def test_delete():
    node = DeleteStmt("tb", [BinaryExpr(Col("", "a"), SvCompOp.EQ, IntLit(1))])
    expected = (
        "DELETE\n"
        "  tb\n"
        "  LIST\n"
        "    BINARY_EXPR\n"
        "      COL\n"
        "        \n"
        "        a\n"
        "      ==\n"
        "      INT_LIT\n"
        "        1\n"
    )
    assert format_tree(node) == expected


def test_update():
    node = UpdateStmt(
        "tb",
        [SetClause("c", StringLit("xyz"))],
        [BinaryExpr(Col("", "z"), SvCompOp.GT, StringLit("abc"))],
    )
    expected = (
        "UPDATE\n"
        "  tb\n"
        "  LIST\n"
        "    SET_CLAUSE\n"
        "      c\n"
        "      STRING_LIT\n"
        "        xyz\n"
        "  LIST\n"
        "    BINARY_EXPR\n"
        "      COL\n"
        "        \n"
        "        z\n"
        "      >\n"
        "      STRING_LIT\n"
        "        abc\n"
    )
    assert format_tree(node) == expected


def test_select():
    node = SelectStmt(
        cols=[Col("x", "a"), Col("y", "b")],
        tabs=["x", "y"],
        conds=[BinaryExpr(Col("x", "a"), SvCompOp.EQ, Col("y", "b"))],
    )
    expected = (
        "SELECT\n"
        "  LIST\n"
        "    COL\n"
        "      x\n"
        "      a\n"
        "    COL\n"
        "      y\n"
        "      b\n"
        "  LIST\n"
        "    x\n"
        "    y\n"
        "  LIST\n"
        "    BINARY_EXPR\n"
        "      COL\n"
        "        x\n"
        "        a\n"
        "      ==\n"
        "      COL\n"
        "        y\n"
        "        b\n"
    )
    assert format_tree(node) == expected


def test_select_star_has_empty_lists():
    assert format_tree(SelectStmt([], ["tb"], [])) == (
        "SELECT\n  LIST\n  LIST\n    tb\n  LIST\n"
    )


@pytest.mark.parametrize(
    "op, text",
    [
        (SvCompOp.EQ, "=="),
        (SvCompOp.NE, "!="),
        (SvCompOp.LT, "<"),
        (SvCompOp.GT, ">"),
        (SvCompOp.LE, "<="),
        (SvCompOp.GE, ">="),
    ],
)
def test_operator_names(op, text):
    lines = format_tree(BinaryExpr(Col("t", "x"), op, IntLit(2))).splitlines()
    assert lines[4] == "  " + text


def test_whole_float_printed_without_fraction():
    assert format_tree(FloatLit(3.0)) == "FLOAT_LIT\n  3\n"


@pytest.mark.parametrize("node", [Field(), Expr(), None])
def test_unknown_node_raises(node):
    with pytest.raises(TypeError):
        format_tree(node)


def test_print_tree_writes_rendering(capsys):
    node = DescTable("tb")
    print_tree(node)
    assert capsys.readouterr().out == format_tree(node)