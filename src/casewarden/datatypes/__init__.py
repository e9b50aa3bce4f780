"""Plain data types shared across the bot."""
