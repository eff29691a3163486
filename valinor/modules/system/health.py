# valinor/modules/system/health.py
from __future__ import annotations
import time, platform, os, importlib.util
import discord
from discord import app_commands, Interaction

from valinor.core.db.base import get_conn
from valinor.core.war_ticker import WarTicker
from valinor.persistence import alliances as repo_alliances
from valinor.persistence import wars as repo_wars

BOT_START_TIME = time.time()

def _fmt_uptime(seconds: int) -> str:
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    return f"{h}h {m}m {s}s"

def _sqlite_info() -> dict:
    """Infos légères sur la DB (chemin, taille, journal_mode, user_version)."""
    info: dict = {}
    con = get_conn()
    for _, name, file in con.execute("PRAGMA database_list;").fetchall():
        if name == "main" and file and os.path.exists(file):
            info["db_path"] = file
            info["db_size_mb"] = os.path.getsize(file) / 1024**2
            break
    (journal_mode,) = con.execute("PRAGMA journal_mode;").fetchone()
    info["journal_mode"] = str(journal_mode).upper()
    (user_version,) = con.execute("PRAGMA user_version;").fetchone()
    info["user_version"] = int(user_version or 0)
    return info

def _monitor_line() -> str:
    monitor = WarTicker.monitor
    if not WarTicker.is_running() or monitor is None:
        return "stopped"
    r = monitor.last_report
    if r is None:
        return "running • no cycle yet"
    return (f"running • checked={r.alliances_checked} failed={r.alliances_failed} "
            f"new={r.new_wars} sent={r.deliveries_ok}/{r.deliveries_ok + r.deliveries_failed}")

def register(tree: app_commands.CommandTree, guild_obj: discord.Object | None, client: discord.Client | None = None):
    """Expose /debug pour inspecter rapidement l'état du bot (test-only idéalement)."""

    @tree.command(name="debug", description="Bot state (latency, uptime, memory, DB, monitor)")
    @app_commands.guilds(guild_obj) if guild_obj else (lambda f: f)
    async def debug_cmd(inter: Interaction):
        latency_ms = round(inter.client.latency * 1000) if inter.client.latency else 0
        uptime = _fmt_uptime(int(time.time() - BOT_START_TIME))

        # Mémoire (optionnel si psutil dispo)
        mem_text = "n/a"
        if importlib.util.find_spec("psutil"):
            import psutil  # type: ignore
            rss_mb = psutil.Process().memory_info().rss / 1024**2
            mem_text = f"{rss_mb:.1f} MB"

        dbi = _sqlite_info()

        embed = discord.Embed(title="🛠️ Debug Valinor", color=discord.Color.blurple())
        embed.add_field(name="📡 Latency", value=f"{latency_ms} ms", inline=True)
        embed.add_field(name="⏳ Uptime", value=uptime, inline=True)
        embed.add_field(name="💾 Memory", value=mem_text, inline=True)
        embed.add_field(name="🔔 Subscriptions", value=str(len(repo_alliances.list_all())), inline=True)
        embed.add_field(name="⚔️ Tracked wars", value=str(repo_wars.count()), inline=True)
        embed.add_field(name="🐍 Python", value=platform.python_version(), inline=True)
        embed.add_field(name="🤖 discord.py", value=discord.__version__, inline=True)
        embed.add_field(name="🔍 Monitor", value=_monitor_line(), inline=False)

        if dbi.get("db_path"):
            embed.add_field(name="📂 DB", value=f"{dbi['db_path']} ({dbi['db_size_mb']:.1f} MB)", inline=False)
        embed.add_field(name="⚙️ SQLite", value=f"journal={dbi['journal_mode']} • user_version={dbi['user_version']}",
                        inline=True)
        embed.add_field(name="📅 Now", value=f"<t:{int(time.time())}:F>", inline=False)

        await inter.response.send_message(embed=embed, ephemeral=True)
