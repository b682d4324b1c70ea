"""
Run one SQL statement or stored procedure from the command line.

The result is printed as JSON, or written to ``--output``.  Examples::

    python -m dal_helper.cli.exec_sql dbo.usp_Clientes --param idZona=3
    python -m dal_helper.cli.exec_sql "SELECT TOP 5 * FROM dbo.Cliente" --query
    python -m dal_helper.cli.exec_sql "DELETE FROM dbo.Tmp" --query --shape rows
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional, Tuple

from ..infra.reporting.json_reporter import result_to_json, write_json
from ..runner import DatabaseCommandRunner
from ..statement import StatementKind


def _param(value: str) -> Tuple[str, str]:
    if '=' not in value:
        raise argparse.ArgumentTypeError(f'Parameter must look like name=value, got {value!r}')
    name, raw = value.split('=', 1)
    return name.strip(), raw


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Execute a SQL statement against SQL Server')
    parser.add_argument('sql', help='SQL query text or stored procedure name')
    kind = parser.add_mutually_exclusive_group()
    kind.add_argument('--query', dest='kind', action='store_const', const=StatementKind.QUERY,
                      help='Treat the text as an ad hoc query')
    kind.add_argument('--proc', dest='kind', action='store_const', const=StatementKind.STORED_PROCEDURE,
                      help='Treat the text as a stored procedure name (default)')
    parser.add_argument('--param', action='append', type=_param, default=[], metavar='NAME=VALUE',
                        help='Parameter to bind; may be repeated')
    parser.add_argument('--shape', choices=('rows', 'table', 'multiple'), default='table',
                        help='Result shape to return')
    parser.add_argument('--output', type=str, help='Write the JSON result to this file')
    parser.set_defaults(kind=StatementKind.STORED_PROCEDURE)
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None, runner: Optional[DatabaseCommandRunner] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    logging.info('[cli/exec_sql] Parsed arguments', extra={'kind': args.kind.name, 'shape': args.shape})
    runner = runner or DatabaseCommandRunner()
    operation = {
        'rows': runner.run,
        'table': runner.query,
        'multiple': runner.query_multiple,
    }[args.shape]
    data = result_to_json(operation(args.sql, args.kind, args.param))
    if args.output:
        write_json(args.output, data)
    else:
        print(json.dumps(data, indent=2, ensure_ascii=False, default=str))
    return 0


def run() -> None:
    try:
        sys.exit(main())
    except Exception as err:
        logging.error('Error executing cli/exec_sql', exc_info=err)
        sys.exit(2)


if __name__ == '__main__':
    run()
