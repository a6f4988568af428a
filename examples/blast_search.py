#!/usr/bin/env python3
"""
Example: Submit a BLAST search and wait for its results.

This demonstrates:
- Submitting a query and receiving a RID
- Waiting for the server's estimated time of execution
- Polling status within the once-a-minute per-RID limit
- Retrieving and summarising the hits

Usage:
    python blast_search.py
"""

import logging
from ncbi_services.blast import BlastClient, run_blast_search
from ncbi_services.params import GetParameters, PutParameters

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)

QUERY = "TTGGCCGGGCCTCCGCAAGCCGTCAGCGCGCGGGCGGAAACCACTGCGACGATCCTGCTGA"


def main():
    with BlastClient(tool="blast-example", email="your.email@example.com") as client:
        output = run_blast_search(
            client,
            QUERY,
            retries=20,
            put_params=PutParameters(program="blastn", database="nt", megablast=True),
            get_params=GetParameters(descriptions=10, alignments=10),
        )

        print(f"\n{output.program} {output.version} against {output.database}")
        print(f"Query: {output.query_def} ({output.query_len} bp)\n")
        for hit in output.hits:
            print(f"  {hit.accession:<12} E={hit.best_evalue:<10.3g} {hit.definition[:60]}")


if __name__ == "__main__":
    main()
