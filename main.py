# main.py
import asyncio
import sys
from collections import Counter, deque
from datetime import date, datetime
from typing import Any, Deque, Dict, List, Optional, Sequence, Tuple

import questionary
from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from swingsim.config import load_config
from swingsim.engine import TradingEngine
from swingsim.events import EngineEvent, EventKind, Level
from swingsim.logger import AsyncAuditLogger, setup_console_logger
from swingsim.models import PendingOrder, Trade, TradeAction

NOTIFICATION_KINDS = [kind for kind in EventKind if kind is not EventKind.PRICE_UPDATED]
LEVEL_STYLES = {Level.SUCCESS: "green", Level.INFO: "cyan", Level.ERROR: "bold red"}
SPARK_CHARS = "▁▂▃▄▅▆▇█"
RECENT_TRADE_ROWS = 8
ANALYTICS_DAYS = 5

COMMANDS = {
    "start": "▶️  Start trading",
    "stop": "⏹️  Stop trading",
    "toggle": "🔁 Toggle simulation / live mode",
    "settings": "⚙️  Edit settings",
    "force": "⚡ Execute pending order now",
    "history": "🧾 Show full trade history",
    "resume": "📊 Back to dashboard",
    "quit": "🚪 Quit",
}

# --- UI HELPER FUNCTIONS ---


def startup_selection(config):
    """Interactive CLI to pick the pair and strategy parameters."""
    print("\n📈 SWING SIM: BUY LOW / SELL HIGH \n")
    strategy = config['strategy']
    pair = questionary.select(
        "Trading pair:", choices=list(config['market']['base_prices'].keys()), default=strategy['pair']
    ).ask()
    if not pair:
        print("No pair selected. Exiting.")
        sys.exit()

    mode = questionary.select("Mode:", choices=["simulation", "live"], default=strategy['mode']).ask()
    rate = questionary.text("Rate percentage (%):", default=str(strategy['rate_percentage'])).ask()
    amount = questionary.text("Trade amount (base asset):", default=str(strategy['amount'])).ask()
    start_now = questionary.confirm("Start trading now?", default=True).ask()
    return {'pair': pair, 'mode': mode, 'rate_percentage': rate, 'amount': amount}, bool(start_now)


class NotificationFeed:
    """Toast replacement: keeps the latest engine notifications for the dashboard."""
    def __init__(self, size: int = 8):
        self.items: Deque[EngineEvent] = deque(maxlen=size)

    async def on_event(self, event: EngineEvent):
        self.items.appendleft(event)


def percent_to_target(order: PendingOrder, price: Optional[float]) -> Optional[float]:
    """How far the market still has to move, in percent, before the order fills."""
    if price is None or price == 0:
        return None
    return (order.target_price - price) / price * 100


def sparkline(prices, width: int = 40) -> str:
    points = list(prices)[-width:]
    if not points:
        return "-"
    lo, hi = min(points), max(points)
    span = (hi - lo) or 1.0
    return "".join(SPARK_CHARS[int((p - lo) / span * (len(SPARK_CHARS) - 1))] for p in points)


def trades_per_day(trades: Sequence[Trade]) -> List[Tuple[date, int]]:
    """Trade counts grouped by local calendar day, oldest day first."""
    counts = Counter(date.fromtimestamp(t.timestamp) for t in trades)
    return sorted(counts.items())


def action_split(trades: Sequence[Trade]) -> Dict[TradeAction, int]:
    split = {action: 0 for action in TradeAction}
    for trade in trades:
        split[trade.action] += 1
    return split


def last_trade_time(trades: Sequence[Trade]) -> Optional[datetime]:
    # Ledger order is newest first
    return datetime.fromtimestamp(trades[0].timestamp) if trades else None


def todays_trades(trades: Sequence[Trade], today: Optional[date] = None) -> int:
    today = today or date.today()
    return sum(1 for t in trades if date.fromtimestamp(t.timestamp) == today)


def trade_history_table(trades: Sequence[Trade], limit: Optional[int] = None, title: str = "🧾 Trade History"):
    """Trade table, newest first. `limit=None` renders the whole ledger."""
    table = Table(title=title, expand=True)
    table.add_column("Time")
    table.add_column("Pair", style="cyan")
    table.add_column("Action")
    table.add_column("Price", justify="right")
    table.add_column("Amount", justify="right")
    table.add_column("Total", justify="right", style="green")
    shown = trades if limit is None else trades[:limit]
    for trade in shown:
        style = "green" if trade.action is TradeAction.BUY else "red"
        table.add_row(
            datetime.fromtimestamp(trade.timestamp).strftime("%Y-%m-%d %H:%M:%S"),
            trade.pair,
            f"[{style}]{trade.action.value.upper()}[/{style}]",
            f"${trade.price:,.4f}",
            f"{trade.amount}",
            f"${trade.total:,.4f}",
        )
    if not shown:
        table.add_row("No trades yet", "", "", "", "", "")
    return table


def generate_dashboard(engine: TradingEngine, notifications: NotificationFeed):
    """
    Creates the Rich Console Dashboard layout.
    Shows market, strategy, wallet, recent trades, analytics and notifications.
    """
    settings = engine.get_settings()
    price = engine.get_current_price()
    history = engine.get_price_history()
    trades = engine.get_trades()

    # 1. Market
    market = Table.grid(padding=(0, 2))
    market.add_row("Pair", f"[cyan]{settings.pair}[/cyan]")
    market.add_row("Price", f"[green]${price:,.4f}[/green]" if price is not None else "-")
    market.add_row("History", f"{len(history)} ticks")
    market.add_row("Trend", sparkline(t.price for t in history))

    # 2. Strategy
    strat = Table.grid(padding=(0, 2))
    strat.add_row("Mode", settings.mode.value.upper())
    strat.add_row("State", engine.get_state().value)
    strat.add_row("Rate", f"{settings.rate_percentage}%")
    strat.add_row("Amount", f"{settings.amount}")
    strat.add_row("Last action", settings.last_action.value.upper())
    order = engine.get_pending_order()
    if order:
        distance = percent_to_target(order, price)
        strat.add_row("Pending", f"{order.action.value.upper()} @ ${order.target_price:,.4f}")
        strat.add_row("To target", f"{distance:+.3f}%" if distance is not None else "-")
    else:
        strat.add_row("Pending", "-")

    # 3. Wallet & Metrics
    balance = engine.get_balance()
    metrics = engine.get_metrics()
    wallet = Table.grid(padding=(0, 2))
    wallet.add_row("Base", f"{balance.base:.8f}")
    wallet.add_row("Quote", f"${balance.quote:,.2f}")
    if price is not None:
        wallet.add_row("Net worth", f"${engine.ledger.net_worth(price):,.2f}")
    wallet.add_row("Trades", f"{metrics.total_trades} ({metrics.successful_trades} ok)")
    wallet.add_row("Profit", f"${metrics.total_profit:,.4f}")
    wallet.add_row("ROI", f"{metrics.roi:.2f}%")
    wallet.add_row("Win rate", f"{metrics.win_rate:.1f}%")

    # 4. Recent trades
    trades_table = trade_history_table(trades, limit=RECENT_TRADE_ROWS, title="🧾 Recent Trades")
    if len(trades) > RECENT_TRADE_ROWS:
        trades_table.caption = f"{len(trades) - RECENT_TRADE_ROWS} older trades in the full history"

    # 5. Analytics
    analytics = Table.grid(padding=(0, 2))
    last = last_trade_time(trades)
    split = action_split(trades)
    analytics.add_row("Last trade", last.strftime("%H:%M:%S") if last else "N/A")
    analytics.add_row("Today", f"{todays_trades(trades)} trades")
    analytics.add_row("Buy / Sell", f"[green]{split[TradeAction.BUY]}[/green] / [red]{split[TradeAction.SELL]}[/red]")
    for day, count in trades_per_day(trades)[-ANALYTICS_DAYS:]:
        analytics.add_row(day.isoformat(), f"{count}")

    # 6. Notifications
    notes = Table.grid()
    for event in notifications.items:
        stamp = datetime.fromtimestamp(event.timestamp).strftime("%H:%M:%S")
        notes.add_row(f"[dim]{stamp}[/dim] [{LEVEL_STYLES[event.level]}]{event.message}[/{LEVEL_STYLES[event.level]}]")

    layout = Layout()
    layout.split_column(Layout(name="top", size=10), Layout(name="middle"), Layout(name="bottom", size=10))
    layout["top"].split_row(
        Layout(Panel(market, title="📡 Market")),
        Layout(Panel(strat, title="🎯 Strategy")),
        Layout(Panel(wallet, title="💰 Wallet")),
    )
    layout["middle"].split_row(
        Layout(Panel(trades_table), ratio=3),
        Layout(Panel(analytics, title="📊 Analytics"), ratio=1),
    )
    layout["bottom"].update(Panel(notes, title="🔔 Notifications", subtitle="Press Enter for commands"))
    return layout


class ControlPanel:
    """
    Runtime commands while the dashboard is paused.
    Every command goes through the engine; rejections surface as notifications.
    """
    def __init__(self, engine: TradingEngine, console: Console):
        self.engine = engine
        self.console = console

    async def prompt(self) -> bool:
        """Shows the command menu once. Returns False when the user wants to quit."""
        choice = await questionary.select(
            "Command:",
            choices=[questionary.Choice(title, value=key) for key, title in COMMANDS.items()],
        ).ask_async()
        if choice is None or choice == "quit":
            return False
        await self.run_command(choice)
        return True

    async def run_command(self, command: str) -> bool:
        if command == "start":
            return await self.engine.start_trading()
        if command == "stop":
            return await self.engine.stop_trading()
        if command == "toggle":
            return await self.engine.toggle_mode()
        if command == "settings":
            fields = await self.ask_settings()
            if not fields:
                return False
            return await self.engine.update_settings(**fields)
        if command == "force":
            order = self.engine.get_pending_order()
            if order is None:
                self.console.print("[yellow]No pending order to execute[/yellow]")
                return False
            return await self.engine.simulate_target_reached(order.id) is not None
        if command == "history":
            self.console.print(trade_history_table(self.engine.get_trades()))
            await questionary.press_any_key_to_continue().ask_async()
            return True
        if command == "resume":
            return True
        raise ValueError(f"Unknown command: {command}")

    async def ask_settings(self) -> Dict[str, Any]:
        """Settings form pre-filled with the current values. Empty dict when cancelled."""
        s = self.engine.get_settings()
        pairs = list(self.engine.config['market']['base_prices'].keys())
        if s.pair not in pairs:
            pairs.append(s.pair)
        answers = await questionary.form(
            pair=questionary.select("Trading pair:", choices=pairs, default=s.pair),
            mode=questionary.select("Mode:", choices=["simulation", "live"], default=s.mode.value),
            rate_percentage=questionary.text("Rate percentage (%):", default=str(s.rate_percentage)),
            amount=questionary.text("Trade amount (base asset):", default=str(s.amount)),
        ).ask_async()
        return {name: value for name, value in (answers or {}).items() if value is not None}

# --- MAIN CONTROLLER ---


class SwingSimApp:
    def __init__(self, config: dict, choices: dict, start_now: bool):
        self.config = config
        self.choices = choices
        self.start_now = start_now
        self.logger = setup_console_logger("SwingSim", config['system']['log_level'])
        self.engine = TradingEngine(config, self.logger)
        self.audit_log = AsyncAuditLogger(config['audit']['trade_log'])
        self.notifications = NotificationFeed()

    async def run(self):
        self.engine.events.subscribe(self.notifications.on_event, *NOTIFICATION_KINDS)
        self.audit_log.attach(self.engine.events)
        try:
            await self.audit_log.start()
            await self.engine.update_settings(**self.choices)
            await self.engine.start()
            if self.start_now:
                await self.engine.start_trading()

            console = Console()
            controls = ControlPanel(self.engine, console)
            running = True
            while running:
                with Live(console=console, refresh_per_second=4) as live:
                    await self._refresh_until_enter(live)
                running = await controls.prompt()
        finally:
            print("Shutting down resources...")
            await self.engine.shutdown()
            await self.audit_log.stop()

    async def _refresh_until_enter(self, live: Live):
        """Redraws the dashboard until a line arrives on stdin."""
        loop = asyncio.get_running_loop()
        pressed = asyncio.Event()
        fd = sys.stdin.fileno()
        loop.add_reader(fd, pressed.set)
        try:
            while not pressed.is_set():
                live.update(generate_dashboard(self.engine, self.notifications))
                await asyncio.sleep(0.25)
        finally:
            loop.remove_reader(fd)
        sys.stdin.readline()


def cli():
    config = load_config("config.yaml")
    try:
        choices, start_now = startup_selection(config)
        app = SwingSimApp(config, choices, start_now)
        try:
            import uvloop
            asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
        except ImportError:
            pass
        asyncio.run(app.run())
    except KeyboardInterrupt:
        print("\n🛑 Simulation Stopped by User.")
        sys.exit()


if __name__ == "__main__":
    cli()
