"""Tripwire Learn — regression tests synthesized from reported failures.

Takes free-text failure reports from a build/test pipeline, classifies them,
remembers them per project, and generates regression tests that keep them
from coming back.

Architecture:
    Taxonomy (data)  →  Detector  →  Synthesizer  →  Exporter
                        Similarity      │
                             └── ErrorLearner ──→ RegistryStore

The taxonomy declares categories and their extraction rules. The detector
applies them to raw text, the similarity matcher links related prior
failures, the synthesizer turns a detected pattern into a test fragment or
lint entry, and the exporter merges fragments into a project's test files
without duplicating them.
"""
