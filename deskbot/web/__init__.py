# Presentation Layer - Read-only web dashboard (FastAPI)
