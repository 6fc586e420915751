"""Insert ordering from foreign-key dependencies.

Pure logic -- no I/O.  Tables are ordered parent-first so that every
referenced table gets its row (and id) before the tables pointing at it.
"""

from course_admin.forms.errors import CircularDependencyError
from course_admin.forms.models import FieldDefinition


def build_dependency_graph(
    tables: list[str],
    fields: list[FieldDefinition],
) -> dict[str, set[str]]:
    """Map each batch table to the batch tables it references.

    References to tables outside the batch are not edges.

    Example:
        >>> fields = [FieldDefinition(name="cursoId", table="alumnos",
        ...     is_foreign_key=True, referenced_table="cursos")]
        >>> build_dependency_graph(["cursos", "alumnos"], fields)
        {'cursos': set(), 'alumnos': {'cursos'}}
    """
    batch = set(tables)
    graph: dict[str, set[str]] = {table: set() for table in tables}

    for definition in fields:
        if not definition.is_foreign_key or definition.table not in batch:
            continue
        if definition.referenced_table in batch:
            graph[definition.table].add(definition.referenced_table)

    return graph


def order_tables(tables: list[str], fields: list[FieldDefinition]) -> list[str]:
    """Topological sort of *tables* by foreign-key dependencies.

    Depth-first: each table is appended after all of its dependencies.
    Tables without dependencies keep their relative input order.

    Args:
        tables: Table names in the batch (duplicates are dropped).
        fields: Field definitions with foreign keys annotated.

    Returns:
        Tables sorted so that referenced tables come first.

    Raises:
        CircularDependencyError: If the references form a cycle
            (a table referencing itself included).
    """
    unique_tables = list(dict.fromkeys(tables))
    graph = build_dependency_graph(unique_tables, fields)

    sorted_tables: list[str] = []
    visited: set[str] = set()
    visiting: set[str] = set()

    def visit(table: str) -> None:
        if table in visited:
            return
        if table in visiting:
            raise CircularDependencyError(table)
        visiting.add(table)
        for dep in sorted(graph[table], key=unique_tables.index):
            visit(dep)
        visiting.discard(table)
        visited.add(table)
        sorted_tables.append(table)

    for table in unique_tables:
        visit(table)

    return sorted_tables
