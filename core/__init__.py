"""
Core domain layer

Everything that holds or mutates game / network state:
- Round engine: Bank dice game state machine, undo history, snapshots
- Feedforward network: layers, forward pass, weight preservation
- Managers: own the live engines and tie them to persistence and rooms
- Locks: concurrency helpers
"""
