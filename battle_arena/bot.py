import discord
from discord.ext import commands
import logging
import asyncio
from typing import Any, Dict, Optional, Set
import os
from pathlib import Path
from datetime import datetime

from .battle_controller import BattleController
from .config_manager import BattleConfigManager
from .engine import BATTLE_COMPLETE, BATTLE_STARTED, QUESTION_TICK
from .models import BattlePhase, BattleSession, ResultSummary
from .question_bank import QuestionBankManager
from .results import DRAW, WIN

logger = logging.getLogger(__name__)

OPTION_LABELS = ("🇦", "🇧", "🇨", "🇩")

OUTCOME_TITLES = {
    WIN: ("🏆 Victory!", 0x00ff00),
    DRAW: ("🤝 Draw!", 0xffaa00),
}
DEFEAT_TITLE = ("💀 Defeat", 0xff0000)


def setup_logging(log_config: Optional[Dict[str, Any]] = None):
    """Set up console, file and error logging."""
    log_config = log_config or {}
    log_level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)
    logs_dir = Path(log_config.get('log_directory', './logs/'))
    logs_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(logs_dir / "bot.log", encoding='utf-8'),
        ]
    )

    error_handler = logging.FileHandler(logs_dir / "errors.log", encoding='utf-8')
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    logging.getLogger().addHandler(error_handler)

    # discord.py is chatty at INFO
    logging.getLogger('discord').setLevel(logging.WARNING)
    logging.getLogger('discord.http').setLevel(logging.WARNING)

    return logging.getLogger(__name__)


def format_options(session: BattleSession, reveal: bool) -> str:
    question = session.current_question
    player_choice = session.player.answers.get(session.current_question_index)
    lines = []
    for i, option in enumerate(question.options):
        marker = ""
        if reveal and i == question.correct_option_index:
            marker = " ✅"
        elif reveal and i == player_choice:
            marker = " ❌"
        lines.append(f"{OPTION_LABELS[i]} **{i + 1}.** {option}{marker}")
    return "\n".join(lines)


def build_battle_embed(session: BattleSession) -> discord.Embed:
    """Render the current state of a battle."""
    player = session.player
    opponent = session.opponent

    if session.phase == BattlePhase.COUNTDOWN:
        embed = discord.Embed(
            title="⚔️ Battle Starting",
            description=f"**{player.display_name}** vs **{opponent.display_name}**\n\n"
                        f"Starting in **{session.countdown_remaining}**...",
            color=0x6699ff
        )
        embed.set_footer(text=f"{session.question_count} questions")
        return embed

    question = session.current_question
    if session.phase == BattlePhase.COMPLETE or question is None:
        return discord.Embed(
            title="⚔️ Battle Over",
            description=f"**{player.display_name}** {player.score} - {opponent.score} **{opponent.display_name}**",
            color=0x6699ff
        )

    index = session.current_question_index
    reveal = player.has_answered(index)

    embed = discord.Embed(
        title=f"Question {index + 1}/{session.question_count}",
        description=f"**{question.text}**\n\n{format_options(session, reveal)}",
        color=0xffaa00 if reveal else 0x00ff00
    )
    embed.add_field(name="📚 Topic", value=f"{question.topic} ({question.difficulty.value})", inline=True)

    if reveal:
        if player.answers.get(index) is None:
            status = "⏰ Time's up!"
        elif question.is_correct(player.answers.get(index)):
            status = "✅ Correct!"
        else:
            status = "❌ Wrong!"
        embed.add_field(name="⏱️ Time", value=status, inline=True)
    else:
        embed.add_field(name="⏱️ Time", value=f"{session.question_time_remaining}s left", inline=True)

    opponent_status = "answered" if opponent.has_answered(index) else "thinking..."
    embed.add_field(
        name="📊 Score",
        value=(
            f"{player.display_name}: **{player.score}** (streak {player.streak})\n"
            f"{opponent.display_name}: **{opponent.score}** ({opponent_status})"
        ),
        inline=False
    )
    embed.set_footer(text="Answer with /answer <1-4>")
    return embed


def build_result_embed(summary: ResultSummary, session: BattleSession) -> discord.Embed:
    """Render the final result of a battle."""
    title, color = OUTCOME_TITLES.get(summary.outcome, DEFEAT_TITLE)
    embed = discord.Embed(
        title=title,
        description=(
            f"**{session.player.display_name}** {summary.final_player_score} - "
            f"{summary.final_opponent_score} **{session.opponent.display_name}**"
        ),
        color=color
    )
    embed.add_field(
        name="🎯 Accuracy",
        value=f"{summary.accuracy:.0%} ({summary.questions_answered}/{summary.question_count} answered)",
        inline=True
    )
    embed.add_field(name="🔥 Best Streak", value=str(summary.best_streak), inline=True)
    embed.add_field(name="📈 Score", value=f"{summary.score_percentage}% of maximum", inline=True)
    embed.set_footer(text="Use /battle to challenge again")
    return embed


class BattleView:
    """
    Engine listener that renders a battle into a single channel message.

    Embeds are built synchronously when an event fires and published in
    order by background tasks, so the message always shows the state of
    the event that produced it.
    """

    def __init__(self, bot: "BattleBot", channel: discord.abc.Messageable, channel_id: int):
        self.bot = bot
        self.channel = channel
        self.channel_id = channel_id
        self.message: Optional[discord.Message] = None
        self._lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()

    def __call__(self, event: str, session: BattleSession) -> None:
        # The first question follows immediately
        if event == BATTLE_STARTED:
            return
        if event == QUESTION_TICK and not self._should_render_tick(session):
            return

        embed = build_battle_embed(session)
        task = asyncio.get_running_loop().create_task(self._publish(event, embed, session))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @staticmethod
    def _should_render_tick(session: BattleSession) -> bool:
        remaining = session.question_time_remaining
        return remaining <= 5 or remaining % 5 == 0

    async def _publish(self, event: str, embed: discord.Embed, session: BattleSession) -> None:
        async with self._lock:
            try:
                if self.message is None:
                    self.message = await self.channel.send(embed=embed)
                else:
                    await self.message.edit(embed=embed)
            except discord.HTTPException as e:
                await self.bot.handle_discord_api_error(e, f"render {event}")
            except Exception as e:
                logger.error(f"Error rendering battle event {event} in channel {self.channel_id}: {e}")

        if event == BATTLE_COMPLETE:
            await self.bot.finish_battle(self.channel_id, self.channel, session)

    async def wait_idle(self) -> None:
        """Wait until every queued render has been published."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class BattleBot(commands.Bot):
    """Discord bot hosting quiz battles against a simulated opponent"""

    def __init__(self, config=None):
        intents = discord.Intents.none()
        intents.guilds = True  # Required for slash commands

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}

        self.bank_manager: Optional[QuestionBankManager] = None
        self.config_manager: Optional[BattleConfigManager] = None
        self.battle_controller: Optional[BattleController] = None
        self.views: Dict[int, BattleView] = {}

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")

            self.config_manager = BattleConfigManager()
            if self.app_config:
                await self.apply_configuration()

            settings = self.config_manager.get_battle_settings()
            self.bank_manager = QuestionBankManager(
                self.config_manager.get_bank_directory(),
                default_time_limit=settings.default_time_limit
            )

            tick_interval = self.app_config.get('bot', {}).get('tick_interval', 0.1)
            self.battle_controller = BattleController(
                self.bank_manager, self.config_manager, tick_interval=tick_interval
            )

            await self.load_question_banks()
            await self.setup_commands()

            logger.info("Bot setup completed successfully")

        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    async def apply_configuration(self):
        """Apply settings from the configuration file to the config manager."""
        errors = self.config_manager.apply_config(self.app_config)
        for error in errors:
            logger.warning(f"Ignored configuration entry: {error}")

    async def load_question_banks(self):
        """Load question banks from the configured directory"""
        try:
            loaded = self.bank_manager.load_question_banks()
            logger.info(f"Loaded {len(loaded)} question banks from {self.bank_manager.bank_directory}")
        except Exception as e:
            logger.error(f"Error loading question banks: {e}")

    async def setup_commands(self):
        """Register all slash commands"""
        try:
            @self.tree.command(name="help", description="Display available commands and their descriptions")
            async def help_command(interaction: discord.Interaction):
                await self.handle_help(interaction)

            @self.tree.command(name="battle", description="Start a quiz battle against a simulated opponent")
            async def battle_command(interaction: discord.Interaction, opponent: str = "Rival", bank: Optional[str] = None):
                await self.handle_battle(interaction, opponent, bank)

            @self.tree.command(name="answer", description="Answer the current question (1-4)")
            async def answer_command(interaction: discord.Interaction, option: int):
                await self.handle_answer(interaction, option)

            @self.tree.command(name="status", description="Show the current battle score and progress")
            async def status_command(interaction: discord.Interaction):
                await self.handle_status(interaction)

            @self.tree.command(name="forfeit", description="Abandon the current battle")
            async def forfeit_command(interaction: discord.Interaction):
                await self.handle_forfeit(interaction)

            @self.tree.command(name="set_countdown", description="Set the pre-battle countdown (0-10 seconds)")
            async def set_countdown_command(interaction: discord.Interaction, seconds: int):
                await self.handle_set_countdown(interaction, seconds)

            @self.tree.command(name="set_questions", description="Set the number of questions for the next battle")
            async def set_questions_command(interaction: discord.Interaction, number: int):
                await self.handle_set_questions(interaction, number)

            @self.tree.command(name="random_order", description="Toggle between random and sequential question order")
            async def random_order_command(interaction: discord.Interaction):
                await self.handle_random_order(interaction)

            logger.info("Slash commands registered successfully")

        except Exception as e:
            logger.error(f"Error setting up commands: {e}")
            raise

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}, in {len(self.guilds)} guilds")
        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def close(self):
        if self.battle_controller:
            stopped = await self.battle_controller.stop_all()
            if stopped:
                logger.info(f"Stopped {stopped} running battles on shutdown")
        self.views.clear()
        await super().close()

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send formatted error response to user with fallback handling"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=0xff0000
            )
            embed.set_footer(text="If this error persists, try using /help for available commands")

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)

        except discord.HTTPException as e:
            logger.error(f"Failed to send error embed: {e}")
            try:
                simple_message = f"{title}: {message}"
                if interaction.response.is_done():
                    await interaction.followup.send(simple_message, ephemeral=True)
                else:
                    await interaction.response.send_message(simple_message, ephemeral=True)
            except discord.HTTPException:
                logger.error("Failed to send fallback error message")

    async def send_with_retry(self, send_func, *args, max_retries: int = 3, **kwargs):
        """Call a Discord send function, backing off exponentially on API errors"""
        for attempt in range(max_retries):
            try:
                return await send_func(*args, **kwargs)
            except discord.HTTPException as e:
                if attempt == max_retries - 1:
                    logger.error(f"All retry attempts failed: {e}")
                    return None

                wait_time = 2 ** attempt
                logger.warning(f"Discord API error (attempt {attempt + 1}), retrying in {wait_time}s: {e}")
                await asyncio.sleep(wait_time)

    async def handle_discord_api_error(self, error: Exception, operation: str, interaction: discord.Interaction = None) -> bool:
        """
        Handle Discord API errors with appropriate retry logic and user feedback.

        Args:
            error: The Discord API error
            operation: Description of the operation that failed
            interaction: Discord interaction object (optional)

        Returns:
            True if error was handled and operation should be retried, False otherwise
        """
        if isinstance(error, discord.HTTPException):
            if error.status == 429:
                retry_after = getattr(error, 'retry_after', 5)
                logger.warning(f"Rate limited during {operation}, waiting {retry_after}s")
                await asyncio.sleep(retry_after)
                return True

            elif error.status in [500, 502, 503, 504]:
                logger.warning(f"Discord server error during {operation}: {error.status}")
                await asyncio.sleep(2)
                return True

            elif error.status == 403:
                logger.error(f"Permission denied during {operation}: {error}")
                if interaction:
                    await self.send_error_response(
                        interaction,
                        "Bot doesn't have permission to perform this action. Please check bot permissions.",
                        "❌ Permission Error"
                    )
                return False

            elif error.status == 404:
                logger.error(f"Resource not found during {operation}: {error}")
                if interaction:
                    await self.send_error_response(
                        interaction,
                        "Channel or message not found. Please try again.",
                        "❌ Not Found"
                    )
                return False

            else:
                logger.error(f"Discord API error during {operation}: {error}")
                if interaction:
                    await self.send_error_response(
                        interaction,
                        "Discord API error occurred. Please try again in a moment.",
                        "❌ Discord Error"
                    )
                return False

        elif isinstance(error, asyncio.TimeoutError):
            logger.warning(f"Timeout during {operation}")
            if interaction:
                await self.send_error_response(interaction, "Operation timed out. Please try again.", "❌ Timeout Error")
            return False

        else:
            logger.error(f"Unexpected error during {operation}: {error}")
            if interaction:
                await self.send_error_response(
                    interaction,
                    "An unexpected error occurred. Please try again.",
                    "❌ Unexpected Error"
                )
            return False

    def on_battle_end(self, channel_id: int, outcome: str, summary: ResultSummary) -> None:
        logger.info(
            f"Battle in channel {channel_id} ended: {outcome} "
            f"({summary.final_player_score} - {summary.final_opponent_score})"
        )

    async def finish_battle(self, channel_id: int, channel: discord.abc.Messageable, session: BattleSession):
        """Acknowledge a completed battle and post its result."""
        summary = await self.battle_controller.acknowledge(channel_id)
        self.views.pop(channel_id, None)
        if summary is None:
            return

        await self.send_with_retry(channel.send, embed=build_result_embed(summary, session))

    # Command handlers
    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        try:
            help_embed = discord.Embed(
                title="⚔️ Quiz Battle Commands",
                description="Race a simulated opponent through timed quiz questions",
                color=0x00ff00
            )

            help_embed.add_field(
                name="🎮 Battle Commands",
                value=(
                    "`/battle [opponent] [bank]` - Start a battle in this channel\n"
                    "`/answer <1-4>` - Answer the current question\n"
                    "`/status` - Show score and progress\n"
                    "`/forfeit` - Abandon the current battle"
                ),
                inline=False
            )

            help_embed.add_field(
                name="📋 Settings Commands",
                value=(
                    "`/set_countdown <seconds>` - Set the pre-battle countdown (0-10)\n"
                    "`/set_questions <number>` - Set the number of questions per battle\n"
                    "`/random_order` - Toggle random question order"
                ),
                inline=False
            )

            help_embed.add_field(
                name="🏅 Scoring",
                value=(
                    "Correct answers earn 10/20/30 points (Easy/Medium/Hard) plus "
                    "a bonus of one point per two seconds left. Wrong answers and timeouts earn nothing."
                ),
                inline=False
            )

            help_embed.add_field(
                name="⚙️ Current Settings",
                value=f"```\n{self.config_manager.get_settings_summary()}\n```",
                inline=False
            )

            banks = self.bank_manager.get_available_banks()
            help_embed.add_field(
                name="📚 Question Banks",
                value=f"```\n{', '.join(banks[:10])}\n```",
                inline=False
            )

            await interaction.response.send_message(embed=help_embed)

        except Exception as e:
            logger.error(f"Error in help command: {e}")
            await self.send_error_response(interaction, "Failed to display help information", "❌ Help Error")

    async def handle_battle(self, interaction: discord.Interaction, opponent: str = "Rival", bank: Optional[str] = None):
        """Handle /battle command"""
        try:
            channel_id = interaction.channel_id
            view = BattleView(self, interaction.channel, channel_id)

            result = await self.battle_controller.start_battle(
                channel_id,
                interaction.user.display_name,
                opponent,
                bank_name=bank,
                listener=view,
                on_battle_end=lambda outcome, summary: self.on_battle_end(channel_id, outcome, summary)
            )

            if not result['success']:
                embed = discord.Embed(
                    title="❌ Battle Start Failed",
                    description=result.get('user_message', result.get('error', 'Unknown error')),
                    color=0xff0000
                )
                progress = self.battle_controller.get_battle_progress(channel_id)
                if progress:
                    embed.add_field(
                        name="Current Battle",
                        value=self.battle_controller.get_battle_status_summary(channel_id),
                        inline=False
                    )
                await interaction.response.send_message(embed=embed, ephemeral=True)
                return

            self.views[channel_id] = view
            info = result['battle_info']
            settings = self.config_manager.get_battle_settings()

            embed = discord.Embed(
                title="⚔️ Battle Starting",
                description=f"**{info['player']}** vs **{info['opponent']}**",
                color=0x6699ff
            )
            embed.add_field(
                name="📊 Battle Details",
                value=(
                    f"Bank: {info['bank_name']}\n"
                    f"Questions: {info['total_questions']}\n"
                    f"Order: {'🔀 Random' if settings.random_order else '📋 Sequential'}"
                ),
                inline=False
            )
            embed.set_footer(text=f"Starting in {info['countdown_remaining']}...")

            await interaction.response.send_message(embed=embed)
            if view.message is None:
                view.message = await interaction.original_response()

        except discord.HTTPException as e:
            await self.handle_discord_api_error(e, "start_battle", interaction)
        except Exception as e:
            logger.error(f"Error in battle command: {e}", exc_info=True)
            await self.send_error_response(interaction, "Failed to start battle", "❌ Battle Start Error")

    async def handle_answer(self, interaction: discord.Interaction, option: int):
        """Handle /answer command"""
        try:
            if not 1 <= option <= 4:
                await interaction.response.send_message("❌ Choose an option between 1 and 4.", ephemeral=True)
                return

            result = self.battle_controller.submit_answer(interaction.channel_id, option - 1)

            if not result['success']:
                await interaction.response.send_message(result['user_message'], ephemeral=True)
                return

            if not result['accepted']:
                prefix = "ℹ️"
            else:
                prefix = "✅" if result['correct'] else "❌"
            await interaction.response.send_message(f"{prefix} {result['message']}", ephemeral=True)

        except discord.HTTPException as e:
            await self.handle_discord_api_error(e, "answer", interaction)
        except Exception as e:
            logger.error(f"Error in answer command: {e}")
            await self.send_error_response(interaction, "Failed to submit answer", "❌ Answer Error")

    async def handle_status(self, interaction: discord.Interaction):
        """Handle /status command"""
        try:
            channel_id = interaction.channel_id
            progress = self.battle_controller.get_battle_progress(channel_id)

            if progress is None:
                embed = discord.Embed(
                    title="ℹ️ No Active Battle",
                    description="There is no battle in this channel.",
                    color=0x6699ff
                )
                embed.add_field(
                    name="📚 Question Banks",
                    value=", ".join(self.bank_manager.get_available_banks()[:5]),
                    inline=False
                )
                embed.add_field(name="⚔️ Start a Battle", value="Use `/battle` to begin", inline=False)
                await interaction.response.send_message(embed=embed, ephemeral=True)
                return

            duration = datetime.now() - progress['start_time']
            minutes = int(duration.total_seconds() // 60)
            seconds = int(duration.total_seconds() % 60)

            embed = discord.Embed(
                title=f"⚔️ Battle Status - {progress['phase'].replace('_', ' ').title()}",
                description=f"**{progress['player']}** vs **{progress['opponent']}**",
                color=0x00ff00
            )
            embed.add_field(
                name="📊 Score",
                value=(
                    f"{progress['player']}: {progress['player_score']} (streak {progress['player_streak']})\n"
                    f"{progress['opponent']}: {progress['opponent_score']}"
                ),
                inline=True
            )
            embed.add_field(
                name="📈 Progress",
                value=(
                    f"Question: {progress['current_question']}/{progress['total_questions']}\n"
                    f"Time left: {progress['time_remaining']}s"
                ),
                inline=True
            )
            embed.add_field(
                name="⏱️ Duration",
                value=f"{minutes}m {seconds}s\nBank: {progress['bank_name']}",
                inline=True
            )
            embed.set_footer(text="Use /forfeit to abandon the battle")

            await interaction.response.send_message(embed=embed, ephemeral=True)

        except Exception as e:
            logger.error(f"Error in status command: {e}")
            await self.send_error_response(interaction, "Failed to get battle status", "❌ Status Error")

    async def handle_forfeit(self, interaction: discord.Interaction):
        """Handle /forfeit command"""
        try:
            channel_id = interaction.channel_id
            summary_line = self.battle_controller.get_battle_status_summary(channel_id)
            stopped = await self.battle_controller.stop_battle(channel_id)
            self.views.pop(channel_id, None)

            if stopped:
                embed = discord.Embed(
                    title="🏳️ Battle Forfeited",
                    description=summary_line,
                    color=0xff6600
                )
                embed.set_footer(text="Use /battle to begin a new battle")
                await interaction.response.send_message(embed=embed)
            else:
                embed = discord.Embed(
                    title="ℹ️ No Active Battle",
                    description="There is no battle to forfeit in this channel.",
                    color=0x6699ff
                )
                await interaction.response.send_message(embed=embed, ephemeral=True)

        except Exception as e:
            logger.error(f"Error in forfeit command: {e}")
            await self.send_error_response(interaction, "Failed to forfeit battle", "❌ Battle Control Error")

    async def _send_setting_result(self, interaction: discord.Interaction, result: Dict[str, Any], title: str):
        if result['success']:
            embed = discord.Embed(title=title, description=result['user_message'], color=0x00ff00)
            embed.add_field(
                name="⚙️ Current Settings",
                value=f"```\n{self.config_manager.get_settings_summary()}\n```",
                inline=False
            )
            await interaction.response.send_message(embed=embed)
        else:
            await interaction.response.send_message(
                result.get('user_message', f"❌ {result.get('error', 'Unknown error')}"),
                ephemeral=True
            )

    async def handle_set_countdown(self, interaction: discord.Interaction, seconds: int):
        """Handle /set_countdown command"""
        try:
            result = self.config_manager.set_countdown_seconds(seconds)
            await self._send_setting_result(interaction, result, "✅ Countdown Updated")
        except discord.HTTPException as e:
            await self.handle_discord_api_error(e, "set_countdown", interaction)
        except Exception as e:
            logger.error(f"Error in set_countdown command: {e}")
            await self.send_error_response(interaction, "Failed to set countdown", "❌ Configuration Error")

    async def handle_set_questions(self, interaction: discord.Interaction, number: int):
        """Handle /set_questions command"""
        try:
            result = self.config_manager.set_question_count(number)
            await self._send_setting_result(interaction, result, "✅ Question Count Updated")
        except discord.HTTPException as e:
            await self.handle_discord_api_error(e, "set_questions", interaction)
        except Exception as e:
            logger.error(f"Error in set_questions command: {e}")
            await self.send_error_response(interaction, "Failed to set question count", "❌ Configuration Error")

    async def handle_random_order(self, interaction: discord.Interaction):
        """Handle /random_order command"""
        try:
            result = self.config_manager.toggle_random_order()
            await self._send_setting_result(interaction, result, "✅ Question Order Updated")
        except discord.HTTPException as e:
            await self.handle_discord_api_error(e, "random_order", interaction)
        except Exception as e:
            logger.error(f"Error in random_order command: {e}")
            await self.send_error_response(interaction, "Failed to toggle random order", "❌ Configuration Error")


async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = BattleBot(config)

    try:
        logger.info("Starting Discord Battle Bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
