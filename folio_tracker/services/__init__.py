"""Portfolio services: parsing, resolution, pricing, ledger and history."""
