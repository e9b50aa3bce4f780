"""
Case listing embed and its paginator view.

Ten cases are shown per page. Only the member who ran the command can page
through the list; the buttons are disabled once the view times out.
"""

import datetime
from typing import List, Optional, Sequence

import discord

from casewarden.datatypes.case_datatypes import Case
from casewarden.localization.translator import translator
from casewarden.util.format_utils import unix_seconds

CASES_PER_PAGE = 10


def page_count(total: int, per_page: int = CASES_PER_PAGE) -> int:
    return max(1, (total + per_page - 1) // per_page)


def page_slice(cases: Sequence[Case], page: int, per_page: int = CASES_PER_PAGE) -> List[Case]:
    """Return the cases shown on the zero-based ``page``."""
    start = page * per_page
    return list(cases[start:start + per_page])


def _describe_case(case: Case, lang: str) -> str:
    lines = [
        translator.get(
            "cases.entry_body",
            lang,
            user_id=case.user_id,
            moderator_id=case.moderator_id,
            reason=case.reason or translator.get("log.no_reason", lang),
            created=unix_seconds(case.created_at),
        )
    ]
    if case.end_date is not None:
        lines.append(translator.get("cases.entry_expires", lang, end=unix_seconds(case.end_date)))
    if case.points is not None:
        lines.append(translator.get("cases.entry_points", lang, points=case.points))
    return "\n".join(lines)


def build_cases_embed(cases: Sequence[Case], page: int, lang: str = "en") -> discord.Embed:
    """Render one page of cases."""
    embed = discord.Embed(
        title=translator.get("cases.view_title", lang),
        color=discord.Color.blurple(),
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    if not cases:
        embed.description = translator.get("cases.view_empty", lang)
        return embed

    for case in page_slice(cases, page):
        embed.add_field(
            name=translator.get("cases.entry_title", lang, case_id=case.case_id, case_type=case.case_type),
            value=_describe_case(case, lang),
            inline=False,
        )
    embed.set_footer(text=translator.get("cases.page_footer", lang, page=page + 1, pages=page_count(len(cases))))
    return embed


class CasePaginatorView(discord.ui.View):
    """Previous/next buttons over a fixed list of cases."""

    def __init__(self, cases: Sequence[Case], invoker_id: int, lang: str = "en", *, timeout_seconds: float = 60):
        super().__init__(timeout=timeout_seconds)
        self.cases = list(cases)
        self.invoker_id = invoker_id
        self.lang = lang
        self.page = 0
        self._message: Optional[discord.Message] = None

        self.previous_button = discord.ui.Button(label=translator.get("cases.previous", lang), style=discord.ButtonStyle.secondary)
        self.next_button = discord.ui.Button(label=translator.get("cases.next", lang), style=discord.ButtonStyle.secondary)
        self.previous_button.callback = self._on_previous
        self.next_button.callback = self._on_next
        self.add_item(self.previous_button)
        self.add_item(self.next_button)
        self._sync_buttons()

    @property
    def message(self) -> Optional[discord.Message]:
        return self._message

    @message.setter
    def message(self, value: Optional[discord.Message]) -> None:
        self._message = value

    @property
    def pages(self) -> int:
        return page_count(len(self.cases))

    def _sync_buttons(self) -> None:
        self.previous_button.disabled = self.page <= 0
        self.next_button.disabled = self.page >= self.pages - 1

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user is None or interaction.user.id != self.invoker_id:
            await interaction.response.send_message(translator.get("cases.not_your_view", self.lang), ephemeral=True)
            return False
        return True

    async def _show_page(self, interaction: discord.Interaction, page: int) -> None:
        self.page = max(0, min(page, self.pages - 1))
        self._sync_buttons()
        await interaction.response.edit_message(embed=build_cases_embed(self.cases, self.page, self.lang), view=self)

    async def _on_previous(self, interaction: discord.Interaction) -> None:  # pragma: no cover - requires Discord runtime
        await self._show_page(interaction, self.page - 1)

    async def _on_next(self, interaction: discord.Interaction) -> None:  # pragma: no cover - requires Discord runtime
        await self._show_page(interaction, self.page + 1)

    async def on_timeout(self) -> None:  # pragma: no cover - relies on Discord timers
        self.previous_button.disabled = True
        self.next_button.disabled = True
        if self._message is not None:
            try:
                await self._message.edit(view=self)
            except discord.HTTPException:
                pass
