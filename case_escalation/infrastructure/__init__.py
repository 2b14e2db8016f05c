"""
Infrastructure
==============

Database plumbing, the LLM client and the inference gateway.
"""
