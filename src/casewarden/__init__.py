"""
CaseWarden - Discord Moderation Bot with a persistent case history

Moderators act through slash commands; every ban, kick, mute and warning is
recorded as a case numbered per server.

Core Components:

- **Moderation Engine**: Policy checks, the platform action, the case write and
  the log notification for each command, in that order
- **Case Store**: SQLite-backed cases with per-guild ids that are never reused
- **Expiry Sweeper**: Background loops lifting temporary bans and expiring
  warnings
- **Log Router**: Per-guild log channel and category mask for notifications
- **Localization**: English and Polish replies and log embeds

Usage:
    from casewarden.main import main
    main()
"""
