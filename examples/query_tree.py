#!/usr/bin/env python3
"""
Basic example: Search PubMed and show how Entrez parsed the query.

Usage:
    python query_tree.py
"""

import logging
from ncbi_services.entrez import EntrezClient
from ncbi_services.params import EntrezParameters
from ncbi_services.translation import Operator

# Enable logging to see rate limiting in action
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


def show(node, depth=0):
    indent = "  " * depth
    if isinstance(node, Operator):
        print(f"{indent}{node.operation}")
        for operand in node.operands:
            show(operand, depth + 1)
    else:
        print(f"{indent}{node.term}  [{node.count:,} records]")


def main():
    # Initialize client (replace with your email)
    with EntrezClient(tool="query-tree-example", email="your.email@example.com") as client:
        print("Searching PubMed for 'science[journal] AND breast cancer AND 2008'...\n")

        results = client.search(
            "pubmed",
            "science[journal] AND breast cancer AND 2008",
            EntrezParameters(retmax=10),
        )

        print(f"Total articles found: {results.count:,}")
        print(f"Query translation: {results.query_translation}\n")

        root = results.ast()
        if root is not None:
            show(root)


if __name__ == "__main__":
    main()
