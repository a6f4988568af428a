"""Tests for the command line front end."""

from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from ncbi_services.cli import main
from ncbi_services.exceptions import NoHitsError
from ncbi_services.models import ESearchResult
from ncbi_services.output import BlastOutput, Hit, Hsp, Iteration
from ncbi_services.translation import Operator, Term


def _mock_client(cls_mock):
    instance = MagicMock()
    cls_mock.return_value.__enter__.return_value = instance
    return instance


def test_email_required():
    """Test the CLI refuses to run without an email address."""
    result = CliRunner().invoke(main, ["search", "cancer"], env={"NCBI_EMAIL": ""})
    assert result.exit_code != 0
    assert "Email must be provided" in result.output


def test_search_command():
    """Test search prints ids and the query tree."""
    results = ESearchResult(
        database="pubmed",
        count=2,
        retmax=2,
        retstart=0,
        idlist=["1", "2"],
        translation_stack=[
            Term(term="a[All Fields]", field="All Fields", count=5),
            Term(term="b[All Fields]", field="All Fields", count=7),
            Operator(operation="AND"),
        ],
    )

    with patch("ncbi_services.cli.EntrezClient") as cls_mock:
        _mock_client(cls_mock).search.return_value = results
        result = CliRunner().invoke(
            main, ["--email", "test@example.com", "search", "a AND b", "--max-results", "2"]
        )

    assert result.exit_code == 0, result.output
    assert "Total results: 2" in result.output
    assert "  1\n  2\n" in result.output
    assert "Query tree:" in result.output
    assert "AND" in result.output
    assert "a[All Fields] (field=All Fields, count=5)" in result.output


def test_blast_command():
    """Test blast prints the hit table."""
    output = BlastOutput(
        program="blastn",
        version="BLASTN 2.15.0+",
        database="nt",
        iterations=[
            Iteration(
                num=1,
                hits=[
                    Hit(
                        num=1,
                        id="gi|1",
                        definition="Example sequence",
                        accession="AB000001",
                        hsps=[Hsp(num=1, bit_score=24.3, score=12, evalue=0.5)],
                    )
                ],
            )
        ],
    )

    with patch("ncbi_services.cli.BlastClient"), \
            patch("ncbi_services.cli.run_blast_search", return_value=output) as run_mock:
        result = CliRunner().invoke(
            main, ["--email", "test@example.com", "blast", "ACGT", "--retries", "4"]
        )

    assert result.exit_code == 0, result.output
    assert run_mock.call_args.args[2] == 4
    assert "Returned 1 hits:" in result.output
    assert "AB000001\t0.5\tExample sequence" in result.output


def test_blast_command_reports_search_errors():
    """Test terminal search outcomes become CLI errors."""
    with patch("ncbi_services.cli.BlastClient"), \
            patch("ncbi_services.cli.run_blast_search", side_effect=NoHitsError("search: R1 no hits", rid="R1")):
        result = CliRunner().invoke(main, ["--email", "test@example.com", "blast", "ACGT"])

    assert result.exit_code == 1
    assert "search: R1 no hits" in result.output


def test_blast_command_max_hits():
    """Test --max-hits limits both the request and the printed table."""
    hits = [
        Hit(
            num=i,
            id=f"gi|{i}",
            definition=f"Sequence {i}",
            accession=f"AB00000{i}",
            hsps=[Hsp(num=1, bit_score=20.0, score=10, evalue=0.1 * i)],
        )
        for i in range(1, 4)
    ]
    output = BlastOutput(
        program="blastn",
        version="BLASTN 2.15.0+",
        database="nt",
        iterations=[Iteration(num=1, hits=hits)],
    )

    with patch("ncbi_services.cli.BlastClient"), \
            patch("ncbi_services.cli.run_blast_search", return_value=output) as run_mock:
        result = CliRunner().invoke(
            main, ["--email", "test@example.com", "blast", "ACGT", "--max-hits", "2"]
        )

    assert result.exit_code == 0, result.output
    get_params = run_mock.call_args.args[4]
    assert get_params.to_params() == {"ALIGNMENTS": "2", "DESCRIPTIONS": "2"}
    assert "AB000001" in result.output
    assert "AB000002" in result.output
    assert "AB000003" not in result.output
