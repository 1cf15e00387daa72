"""
Service layer

Pure calculation logic, no state transitions:
- RankingService: standings and winners
- PersistenceService: saved-game serialization, migration and storage
- SyncService: room state sanitizing and inbound event routing
- NamingService: room codes and participant ids
- TruthTableService: gate truth tables and challenge checks
"""
