"""CashCat MCP gateway."""
