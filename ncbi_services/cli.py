import logging
from typing import Optional

import click

from .blast import BlastClient, run_blast_search
from .entrez import EntrezClient
from .exceptions import NCBIClientError
from .params import EntrezParameters, GetParameters, PutParameters
from .translation import Operator, StackNode


def _echo_tree(node: StackNode, depth: int = 0) -> None:
    """Print a query tree, one node per line."""
    indent = "  " * depth
    if isinstance(node, Operator):
        click.echo(f"{indent}{node.operation}")
        for operand in node.operands:
            _echo_tree(operand, depth + 1)
    else:
        click.echo(f"{indent}{node.term} (field={node.field}, count={node.count})")


@click.group()
@click.option(
    "--email",
    envvar="NCBI_EMAIL",
    help="Email address required by NCBI (or set NCBI_EMAIL).",
)
@click.option(
    "--tool",
    envvar="NCBI_TOOL",
    default="ncbi-services",
    show_default=True,
    help="Application name sent with each request (or set NCBI_TOOL).",
)
@click.option(
    "--api-key",
    envvar="NCBI_API_KEY",
    help="Optional NCBI API key for Entrez (or set NCBI_API_KEY).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log request progress.")
@click.pass_context
def main(
    ctx: click.Context,
    email: Optional[str],
    tool: str,
    api_key: Optional[str],
    verbose: bool,
) -> None:
    """NCBI BLAST and Entrez command line client."""
    if not email:
        raise click.UsageError(
            "Email must be provided via --email or NCBI_EMAIL environment variable."
        )

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.obj = {"email": email, "tool": tool, "api_key": api_key}


@main.command()
@click.argument("query")
@click.option("--program", default="blastn", show_default=True, help="BLAST program.")
@click.option("--database", default="nt", show_default=True, help="BLAST database.")
@click.option(
    "--retries",
    type=int,
    default=10,
    show_default=True,
    help="Maximum number of status polls.",
)
@click.option(
    "--max-hits",
    type=int,
    default=10,
    show_default=True,
    help="Number of hits to print.",
)
@click.pass_context
def blast(
    ctx: click.Context,
    query: str,
    program: str,
    database: str,
    retries: int,
    max_hits: int,
) -> None:
    """Run a BLAST search for QUERY and print the best hits."""
    put_params = PutParameters(program=program, database=database)
    get_params = GetParameters(descriptions=max_hits, alignments=max_hits)

    with BlastClient(tool=ctx.obj["tool"], email=ctx.obj["email"]) as client:
        try:
            output = run_blast_search(client, query, retries, put_params, get_params)
        except NCBIClientError as e:
            raise click.ClickException(str(e))

    click.echo(f"{output.program} {output.version} against {output.database}")
    click.echo(f"Returned {len(output.hits)} hits:")
    for hit in output.hits[:max_hits]:
        click.echo(f"  {hit.accession}\t{hit.best_evalue}\t{hit.definition}")


@main.command()
@click.argument("term")
@click.option(
    "--db",
    default="pubmed",
    show_default=True,
    help="NCBI database to search.",
)
@click.option(
    "--max-results",
    "retmax",
    type=int,
    default=20,
    show_default=True,
    help="Maximum number of IDs to return.",
)
@click.pass_context
def search(ctx: click.Context, term: str, db: str, retmax: int) -> None:
    """Run an ESearch query and print the matching IDs and query tree."""
    with EntrezClient(
        tool=ctx.obj["tool"],
        email=ctx.obj["email"],
        api_key=ctx.obj["api_key"],
    ) as client:
        try:
            results = client.search(db, term, EntrezParameters(retmax=retmax))
            root = results.ast()
        except NCBIClientError as e:
            raise click.ClickException(str(e))

    click.echo(f"Total results: {results.count}")
    click.echo(f"Returned {len(results.idlist)} IDs:")
    for id_ in results.idlist:
        click.echo(f"  {id_}")

    if root is not None:
        click.echo("Query tree:")
        _echo_tree(root, depth=1)


if __name__ == "__main__":
    main()
