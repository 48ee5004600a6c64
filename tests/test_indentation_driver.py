from core.chunk_types import ParseOk
from core.indentation_driver import extract


ORDERS_MODULE = '''"""Order helpers."""
import logging
from typing import List

logger = logging.getLogger(__name__)


@dataclass
class Order:
    """A customer order."""

    id: str

    def total(self, items: List[int]) -> int:
        return sum(items)

    def _reset(self):
        self.id = ""


async def fetch_orders(client, limit: int = 10) -> List[Order]:
    return await client.get(limit)
'''


def _by_name(result):
    return {c.name: c for c in result.candidates}


def test_import_block():
    """Test leading imports after the module docstring form one block."""
    result = extract("orders.py", ORDERS_MODULE, "python")

    assert isinstance(result, ParseOk)
    block = _by_name(result)["imports"]
    assert block.chunk_type == "import-block"
    assert (block.start_line, block.end_line) == (2, 3)
    assert block.imports == ["logging", "typing"]
    assert result.imports == ["logging", "typing"]


def test_decorated_class():
    """Test class range, decorators, docstring and exports."""
    order = _by_name(extract("orders.py", ORDERS_MODULE, "python"))["Order"]

    assert order.chunk_type == "model"
    assert order.start_line == 8
    assert order.header_line == 9
    assert order.end_line == 18
    assert order.decorators == ["@dataclass"]
    assert order.documentation == "A customer order."
    assert order.exports == ["total"]
    assert order.is_public_api


def test_methods_are_nested():
    """Test class bodies are rescanned for members."""
    candidates = _by_name(extract("orders.py", ORDERS_MODULE, "python"))

    total = candidates["total"]
    assert total.chunk_type == "method"
    assert total.parent_name == "Order"
    assert total.context == ["Order"]
    assert (total.start_line, total.end_line) == (14, 15)
    assert total.type_info.return_type == "int"
    assert total.type_info.parameters == [{"name": "items", "type": "List[int]"}]

    assert not candidates["_reset"].is_public_api


def test_async_function_signature():
    """Test async functions with annotated parameters."""
    fetch = _by_name(extract("orders.py", ORDERS_MODULE, "python"))["fetch_orders"]

    assert fetch.chunk_type == "function"
    assert fetch.parent is None
    assert fetch.signature == "async def fetch_orders(client, limit: int = 10) -> List[Order]"
    assert fetch.type_info.parameters == [{"name": "client"}, {"name": "limit", "type": "int"}]
    assert fetch.type_info.return_type == "List[Order]"
    assert fetch.end_line == 22


def test_constructor_and_multiline_header():
    """Test __init__ is a constructor and wrapped headers are joined."""
    code = '''class Client:
    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
    ):
        self.base_url = base_url
        self.timeout = timeout
'''
    candidates = _by_name(extract("client.py", code, "python"))

    init = candidates["__init__"]
    assert init.chunk_type == "constructor"
    assert init.is_public_api
    assert init.end_line == 8
    assert init.type_info.parameters == [
        {"name": "base_url", "type": "str"},
        {"name": "timeout", "type": "float"},
    ]


def test_triple_quoted_strings_do_not_end_constructs():
    """Test unindented lines inside a string stay in the function body."""
    code = '''def usage():
    text = """
Usage:
  run --fast
"""
    return text


def main():
    print(usage())
'''
    candidates = _by_name(extract("cli.py", code, "python"))

    assert candidates["usage"].end_line == 6
    assert candidates["main"].start_line == 9


def test_multiline_decorator_attaches_to_function():
    """Test decorator arguments spanning lines stay with the decorated function."""
    code = '''def first():
    return 1


@app.route(
    "/orders",
    methods=["POST"],
)
def create_order():
    return {}
'''
    result = extract("views.py", code, "python")

    first, create_order = result.candidates
    assert (first.start_line, first.end_line) == (1, 2)
    assert (create_order.start_line, create_order.end_line) == (5, 10)
    assert create_order.header_line == 9
    assert create_order.chunk_type == "handler"
    assert create_order.decorators == ['@app.route( "/orders", methods=["POST"], )']
