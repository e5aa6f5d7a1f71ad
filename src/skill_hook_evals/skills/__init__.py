"""Local skill tree inspection."""
