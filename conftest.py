"""Global pytest configuration."""

import os

# Set test environment before any imports: in-memory stores, stub oracle
os.environ["DATABASE_URL"] = ""
os.environ["OPENAI_API_KEY"] = ""
