"""
app_orchestrator

This package orders the deployment of multi node applications.

An application is a set of components mapped to nodes. Components produce and
consume capabilities. A node whose components consume a capability must be
deployed after the node that produces it.

We keep modules small and well separated:
core contains shared data structures and errors
language contains the expression model and evaluation scope
model contains the component mapping, application instances and model sources
compiler turns a parsed model into application instances
topology contains the node dependency graph and ordering
registry contains capability lookup for per node compilation
report renders the environment catalog and deployment commands
"""
