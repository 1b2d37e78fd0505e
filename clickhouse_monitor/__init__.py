"""ClickHouse connection and query latency monitor."""
