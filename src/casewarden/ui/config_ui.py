"""
Interactive /config menu.

The first select picks the setting; a second component edits it. Nothing is
written until the user completes a choice, so a timeout leaves the settings
as they were.
"""

import datetime
from typing import Optional

import discord

from casewarden.datatypes.discord_datatypes import ChannelID, GuildID
from casewarden.datatypes.guild_settings import SUPPORTED_LANGUAGES, GuildSettings
from casewarden.datatypes.log_datatypes import ALL_CATEGORIES, LogCategory, set_categories
from casewarden.localization.translator import translator
from casewarden.services.guild_settings_service import GuildSettingsService
from casewarden.util.logger import get_logger

logger = get_logger("config_ui")

WARN_EXPIRE_PRESETS = (3, 7, 14, 30)
MIN_CUSTOM_WARN_EXPIRE_DAYS = 3
LANGUAGE_NAMES = {"en": "English", "pl": "Polski"}


def parse_custom_days(text: str, minimum: int = MIN_CUSTOM_WARN_EXPIRE_DAYS) -> Optional[int]:
    """Return the number of days typed into the modal, or None if invalid."""
    text = text.strip()
    if not text.isdigit():
        return None
    days = int(text)
    return days if days >= minimum else None


def build_config_embed(settings: GuildSettings, lang: str) -> discord.Embed:
    """Summarize the guild's current settings."""
    embed = discord.Embed(
        title=translator.get("config.title", lang),
        color=discord.Color.blurple(),
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    embed.add_field(
        name=translator.get("config.field.language", lang),
        value=LANGUAGE_NAMES.get(settings.lang, settings.lang),
        inline=True,
    )
    embed.add_field(
        name=translator.get("config.field.log_channel", lang),
        value=f"<#{settings.default_log_channel}>" if settings.default_log_channel else translator.get("config.none", lang),
        inline=True,
    )
    embed.add_field(
        name=translator.get("config.field.warn_expire", lang),
        value=translator.get("config.days", lang, days=settings.warn_expire_time),
        inline=True,
    )
    active = [c for c in ALL_CATEGORIES if c in settings.log_categories]
    embed.add_field(
        name=translator.get("config.field.log_types", lang),
        value=", ".join(translator.get(f"log.category.{c.key}", lang) for c in active) or translator.get("config.none", lang),
        inline=False,
    )
    return embed


class ConfigView(discord.ui.View):
    """Holds the state of one /config session and swaps its components per step."""

    def __init__(
        self,
        service: GuildSettingsService,
        settings: GuildSettings,
        invoker_id: int,
        *,
        timeout_seconds: float = 60,
    ):
        super().__init__(timeout=timeout_seconds)
        self.service = service
        self.settings = settings
        self.guild_id: GuildID = settings.guild_id
        self.invoker_id = invoker_id
        self.timeout_seconds = timeout_seconds
        self._message: Optional[discord.Message] = None
        self.show_menu()

    @property
    def lang(self) -> str:
        return self.settings.lang

    @property
    def message(self) -> Optional[discord.Message]:
        return self._message

    @message.setter
    def message(self, value: Optional[discord.Message]) -> None:
        self._message = value

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def show_menu(self) -> None:
        self.clear_items()
        self.add_item(SettingSelect(self.lang))

    def show_setting(self, setting: str) -> None:
        self.clear_items()
        if setting == "warn_expire":
            self.add_item(WarnExpireSelect(self.lang))
        elif setting == "log_channel":
            self.add_item(LogChannelSelect(self.lang))
        elif setting == "log_types":
            self.add_item(LogTypesSelect(self.settings, self.lang))
        elif setting == "language":
            self.add_item(LanguageSelect(self.lang))

    async def reload_and_render(self, interaction: discord.Interaction) -> None:
        """Re-read the settings, go back to the menu and confirm the change."""
        refreshed = await self.service.get_settings(self.guild_id)
        if refreshed is not None:
            self.settings = refreshed
        self.show_menu()
        content = translator.get("config.saved", self.lang)
        embed = build_config_embed(self.settings, self.lang)
        if interaction.response.is_done():
            await interaction.edit_original_response(content=content, embed=embed, view=self)
        else:
            await interaction.response.edit_message(content=content, embed=embed, view=self)

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return interaction.user is not None and interaction.user.id == self.invoker_id

    async def on_timeout(self) -> None:  # pragma: no cover - relies on Discord timers
        self.clear_items()
        if self._message is not None:
            try:
                await self._message.edit(content=translator.get("config.timeout", self.lang), view=None)
            except discord.HTTPException:
                pass


class SettingSelect(discord.ui.Select):
    def __init__(self, lang: str):
        super().__init__(
            placeholder=translator.get("config.placeholder", lang),
            options=[
                discord.SelectOption(label=translator.get(f"config.option.{value}", lang), value=value)
                for value in ("warn_expire", "log_channel", "log_types", "language")
            ],
        )

    async def callback(self, interaction: discord.Interaction) -> None:  # pragma: no cover - requires Discord runtime
        view: ConfigView = self.view  # type: ignore[assignment]
        view.show_setting(self.values[0])
        await interaction.response.edit_message(view=view)


class WarnExpireSelect(discord.ui.Select):
    def __init__(self, lang: str):
        options = [
            discord.SelectOption(label=translator.get("config.days", lang, days=days), value=str(days))
            for days in WARN_EXPIRE_PRESETS
        ]
        options.append(discord.SelectOption(label=translator.get("config.custom", lang), value="custom"))
        super().__init__(placeholder=translator.get("config.warn_expire_placeholder", lang), options=options)

    async def callback(self, interaction: discord.Interaction) -> None:  # pragma: no cover - requires Discord runtime
        view: ConfigView = self.view  # type: ignore[assignment]
        choice = self.values[0]
        if choice == "custom":
            await interaction.response.send_modal(CustomExpireModal(view))
            return
        await view.service.update_warn_expire_time(view.guild_id, int(choice))
        await view.reload_and_render(interaction)


class CustomExpireModal(discord.ui.Modal):
    def __init__(self, config_view: ConfigView):
        lang = config_view.lang
        super().__init__(title=translator.get("config.modal_title", lang), timeout=config_view.timeout_seconds)
        self.config_view = config_view
        self.add_item(
            discord.ui.InputText(
                label=translator.get("config.modal_label", lang, minimum=MIN_CUSTOM_WARN_EXPIRE_DAYS),
                placeholder=str(MIN_CUSTOM_WARN_EXPIRE_DAYS),
                max_length=4,
            )
        )

    async def callback(self, interaction: discord.Interaction) -> None:  # pragma: no cover - requires Discord runtime
        view = self.config_view
        days = parse_custom_days(self.children[0].value or "")
        if days is None:
            await interaction.response.send_message(
                translator.get("config.custom_invalid", view.lang, minimum=MIN_CUSTOM_WARN_EXPIRE_DAYS),
                ephemeral=True,
            )
            return
        await view.service.update_warn_expire_time(view.guild_id, days)
        await interaction.response.defer()
        await view.reload_and_render(interaction)


class LogChannelSelect(discord.ui.Select):
    def __init__(self, lang: str):
        super().__init__(
            select_type=discord.ComponentType.channel_select,
            channel_types=[discord.ChannelType.text],
            placeholder=translator.get("config.log_channel_placeholder", lang),
        )

    async def callback(self, interaction: discord.Interaction) -> None:  # pragma: no cover - requires Discord runtime
        view: ConfigView = self.view  # type: ignore[assignment]
        await view.service.update_log_channel(view.guild_id, ChannelID(self.values[0].id))
        await view.reload_and_render(interaction)


class LogTypesSelect(discord.ui.Select):
    """Multi-select; the submitted selection replaces the whole mask."""

    def __init__(self, settings: GuildSettings, lang: str):
        active = settings.log_categories
        super().__init__(
            placeholder=translator.get("config.log_types_placeholder", lang),
            min_values=0,
            max_values=len(ALL_CATEGORIES),
            options=[
                discord.SelectOption(
                    label=translator.get(f"log.category.{category.key}", lang),
                    value=category.key,
                    default=category in active,
                )
                for category in ALL_CATEGORIES
            ],
        )
        self.current_mask = settings.log_types

    async def callback(self, interaction: discord.Interaction) -> None:  # pragma: no cover - requires Discord runtime
        view: ConfigView = self.view  # type: ignore[assignment]
        chosen = [LogCategory[value.upper()] for value in self.values]
        await view.service.update_log_types(view.guild_id, set_categories(self.current_mask, chosen))
        await view.reload_and_render(interaction)


class LanguageSelect(discord.ui.Select):
    def __init__(self, lang: str):
        super().__init__(
            placeholder=translator.get("config.language_placeholder", lang),
            options=[
                discord.SelectOption(label=LANGUAGE_NAMES.get(code, code), value=code, default=code == lang)
                for code in SUPPORTED_LANGUAGES
            ],
        )

    async def callback(self, interaction: discord.Interaction) -> None:  # pragma: no cover - requires Discord runtime
        view: ConfigView = self.view  # type: ignore[assignment]
        await view.service.update_lang(view.guild_id, self.values[0])
        await view.reload_and_render(interaction)
