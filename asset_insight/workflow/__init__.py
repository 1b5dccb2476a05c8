"""
Asset Insight: Workflow package.

Modules:
    conditions  Dot-path lookup and step condition evaluation.
    actions     Action handler registry and the reference handlers.
    store       Definition / execution registry and event sinks.
    presets     Workflows shipped with the engine.
    engine      ``WorkflowEngine``: registration, toggling and execution.
"""
