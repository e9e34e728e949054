"""Knowledge base module: storage, the build pipeline, and the enrichment dialogue.

The write paths follow one rule: relational rows and graph overlay change
together inside a single transaction, and the semantic index is refreshed
only after that transaction commits.
"""
