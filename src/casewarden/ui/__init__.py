"""
User interface components for CaseWarden.

- **case_views.py**: Paginated case listing used by /cases view.
- **config_ui.py**: Select menus and modal behind /config.
- **log_embed.py**: Embeds posted to a guild's log channel.
"""
