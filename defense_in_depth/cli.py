import sys
import random
import asyncio
import argparse
import logging
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from defense_in_depth.config import configure_logging, settings
from defense_in_depth.core.client import DataProviderClient, DataProviderError
from defense_in_depth.core.repository import ReferenceDataError, ReferenceDataStore
from defense_in_depth.engine.posture import PostureReport
from defense_in_depth.engine.reducer import validate_speed
from defense_in_depth.engine.scheduler import AsyncioScheduler, Scheduler, VirtualScheduler
from defense_in_depth.engine.session import VisualizationSession
from defense_in_depth.engine.state import MAX_SPEED, MIN_SPEED, SPEED_STEP, EngineState

logger = logging.getLogger(__name__)
console = Console()

# Layer colour keys from the data files mapped onto terminal colours.
LAYER_STYLES = {
    "emerald": "green",
    "blue": "blue",
    "violet": "magenta",
    "amber": "yellow",
    "rose": "red",
    "cyan": "cyan",
    "indigo": "bright_blue",
}


def style_for(color: str) -> str:
    return LAYER_STYLES.get(color, "white")


def speed_value(raw: str) -> float:
    try:
        return validate_speed(float(raw))
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"speed must be between {MIN_SPEED} and {MAX_SPEED} in steps of {SPEED_STEP}, got {raw!r}"
        )


def build_session(args, scheduler: Scheduler, difficulty: Optional[str] = None) -> VisualizationSession:
    """
    Reads the reference data once, from a running API when --api-url is
    given and from the packaged data files otherwise.
    """
    rng = random.Random(args.seed) if args.seed is not None else None
    if args.api_url:
        client = DataProviderClient(args.api_url)
        layers = client.fetch_layers()
        details = [client.fetch_layer_details(layer.id) for layer in layers]
        return VisualizationSession(
            layers=layers,
            threats=client.fetch_threats(),
            questions=client.fetch_quiz(difficulty),
            scheduler=scheduler,
            layer_details=[detail for detail in details if detail is not None],
            rng=rng,
        )
    store = ReferenceDataStore.load(settings.data_dir)
    return VisualizationSession.from_store(store, scheduler, difficulty=difficulty, rng=rng)


class StateRenderer:
    """Prints one line per primary-loop transition."""

    def __init__(self, session: VisualizationSession):
        self.session = session
        self._last: Optional[EngineState] = None

    def __call__(self, state: EngineState):
        last = self._last
        self._last = state
        if last is not None and last.current_layer_id == state.current_layer_id \
                and last.threat_blocked_at_layer_id == state.threat_blocked_at_layer_id \
                and last.active_threat == state.active_threat:
            return

        layer = self.session.get_layer(state.current_layer_id)
        name = layer.name if layer else f"Layer {state.current_layer_id}"
        style = style_for(layer.color) if layer else "white"
        completed = ", ".join(str(layer_id) for layer_id in state.completed_layer_ids) or "-"
        line = f"[dim]loop {state.loop_count}[/dim] [bold {style}]{state.current_layer_id}. {name}[/bold {style}]" \
               f" [dim]completed: {completed}[/dim]"
        if state.threat_blocked_at_layer_id is not None:
            line += f" [bold red]BLOCKED {state.active_threat.name} at layer {state.threat_blocked_at_layer_id}[/bold red]"
        elif state.active_threat is not None:
            line += f" [yellow]threat: {state.active_threat.name} (stopped at layer {state.active_threat.blocked_at_layer})[/yellow]"
        console.print(line)


def disable_layers(session: VisualizationSession, layer_ids):
    """Switches the given layers off; naming a layer twice still leaves it off."""
    for layer_id in sorted(set(layer_ids)):
        if layer_id in session.engine.state.enabled_layer_ids:
            session.engine.toggle_layer(layer_id)
        elif session.get_layer(layer_id) is None:
            raise ValueError(f"Unknown layer id: {layer_id}")


def prepare_session(session: VisualizationSession, args):
    engine = session.engine
    disable_layers(session, args.disable)
    engine.set_speed(args.speed)


def run_fast_forward(args) -> int:
    scheduler = VirtualScheduler()
    with build_session(args, scheduler) as session:
        session.engine.subscribe(StateRenderer(session))
        prepare_session(session, args)
        for _ in range(args.ticks):
            scheduler.advance(session.engine.state.tick_interval_ms)
        state = session.engine.state
        console.print(f"\n[bold green]{args.ticks} ticks simulated in {scheduler.now() / 1000:.1f}s of animation time.[/bold green]")
        console.print(f"[bold]Loop {state.loop_count}, currently at layer {state.current_layer_id}.[/bold]")
    return 0


async def run_realtime(args):
    scheduler = AsyncioScheduler()
    with build_session(args, scheduler) as session:
        session.engine.subscribe(StateRenderer(session))
        prepare_session(session, args)
        if args.duration:
            await asyncio.sleep(args.duration)
        else:
            await asyncio.Event().wait()


def cmd_simulate(args) -> int:
    console.print("[bold cyan]Defense in Depth simulation[/bold cyan] (Ctrl+C to stop)")
    if args.ticks:
        return run_fast_forward(args)
    try:
        asyncio.run(run_realtime(args))
    except KeyboardInterrupt:
        console.print("\n[yellow]Simulation stopped.[/yellow]")
    return 0


def print_posture(report: PostureReport):
    console.print(f"[bold]Security score: {report.security_score}%[/bold] "
                  f"(enabled layers: {', '.join(map(str, report.enabled_layer_ids)) or 'none'})")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Threat", style="dim", width=28)
    table.add_column("Severity")
    table.add_column("Stopped at layer")
    table.add_column("Outcome")
    for outcome in report.outcomes:
        verdict = "[green]blocked[/green]" if outcome.blocked else "[bold red]gets through[/bold red]"
        table.add_row(outcome.threat.name, outcome.threat.severity.value, str(outcome.threat.blocked_at_layer), verdict)
    console.print(table)

    if report.vulnerabilities:
        console.print("[bold red]Exposed to:[/bold red] " + ", ".join(report.vulnerabilities))
    else:
        console.print("[green]No layer is disabled.[/green]")


def cmd_posture(args) -> int:
    with build_session(args, VirtualScheduler()) as session:
        disable_layers(session, args.disable)
        print_posture(session.posture())
    return 0


def cmd_layer(args) -> int:
    with build_session(args, VirtualScheduler()) as session:
        drilldown = session.open_drilldown(args.layer_id)
        layer = drilldown.layer
        console.print(f"[bold {style_for(layer.color)}]{layer.id}. {layer.name}[/bold {style_for(layer.color)}]")
        console.print(layer.role)
        for mechanism in layer.protection_mechanisms:
            console.print(f"  - {mechanism}")
        if drilldown.details is None:
            return 0

        examples = Table(show_header=True, header_style="bold magenta", title="Real-world examples")
        examples.add_column("Year", width=6)
        examples.add_column("Name")
        examples.add_column("Impact")
        for example in drilldown.details.real_world_examples:
            examples.add_row(str(example.year), example.name, example.impact)
        console.print(examples)

        tools = Table(show_header=True, header_style="bold magenta", title="Tools")
        tools.add_column("Name")
        tools.add_column("Category")
        tools.add_column("Description")
        for tool in drilldown.details.tools:
            tools.add_row(tool.name, tool.category, tool.description)
        console.print(tools)
    return 0


def cmd_quiz(args) -> int:
    with build_session(args, VirtualScheduler(), difficulty=args.difficulty) as session:
        quiz = session.quiz
        if quiz is None:
            console.print(f"[yellow]No questions with difficulty '{args.difficulty}'.[/yellow]")
            return 0
        final_score = None
        while final_score is None:
            question = quiz.current_question
            console.print(f"\n[bold]Question {quiz.current_index + 1}/{quiz.total}[/bold] [dim]({question.difficulty.value})[/dim]")
            console.print(question.question)
            for index, option in enumerate(question.options, start=1):
                console.print(f"  {index}. {option}")
            while not quiz.is_answered:
                raw = console.input("Your answer: ").strip()
                if raw.isdigit() and 1 <= int(raw) <= len(question.options):
                    quiz.answer(int(raw) - 1)
                else:
                    console.print(f"[red]Enter a number between 1 and {len(question.options)}.[/red]")
            if quiz.is_correct():
                console.print("[green]Correct![/green]")
            else:
                console.print(f"[red]Incorrect.[/red] The answer was: {question.options[question.correct_answer]}")
            console.print(f"[dim]{question.explanation}[/dim]")
            final_score = quiz.next()
        console.print(f"\n[bold green]Final score: {final_score}/{quiz.total}[/bold green]")
    return 0


def cmd_serve(args) -> int:
    import uvicorn
    uvicorn.run("defense_in_depth.api.main:app", host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Defense in Depth visualizer: API server and terminal simulation.")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (default from LOG_LEVEL).")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the reference data API.")
    serve.add_argument("--host", default=settings.api_host)
    serve.add_argument("--port", type=int, default=settings.api_port)
    serve.set_defaults(handler=cmd_serve)

    def add_data_options(sub):
        sub.add_argument("--api-url", default=None, help="Load data from a running API instead of the packaged files.")
        sub.add_argument("--seed", type=int, default=None, help="Seed for threat selection.")

    simulate = subparsers.add_parser("simulate", help="Animate the layers in the terminal.")
    add_data_options(simulate)
    simulate.add_argument("-s", "--speed", type=speed_value, default=1.0, help="Speed multiplier, 0.5-2.0 in steps of 0.25.")
    simulate.add_argument("-d", "--disable", type=int, action="append", default=[], help="Disable a layer (repeatable).")
    simulate.add_argument("-n", "--ticks", type=int, default=0, help="Fast-forward this many ticks instead of running in real time.")
    simulate.add_argument("--duration", type=float, default=0, help="Stop a real-time run after this many seconds.")
    simulate.set_defaults(handler=cmd_simulate)

    posture = subparsers.add_parser("posture", help="Compare security posture with some layers disabled.")
    add_data_options(posture)
    posture.add_argument("-d", "--disable", type=int, action="append", default=[], help="Disable a layer (repeatable).")
    posture.set_defaults(handler=cmd_posture)

    layer = subparsers.add_parser("layer", help="Drill down into one layer.")
    add_data_options(layer)
    layer.add_argument("layer_id", type=int)
    layer.set_defaults(handler=cmd_layer)

    quiz = subparsers.add_parser("quiz", help="Take the Defense in Depth quiz.")
    add_data_options(quiz)
    quiz.add_argument("--difficulty", choices=["easy", "medium", "hard"], default=None)
    quiz.set_defaults(handler=cmd_quiz)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    try:
        return args.handler(args)
    except DataProviderError as e:
        logger.critical(f"Could not load reference data: {e}")
        console.print(f"[bold red]Error: could not load data from {args.api_url}. Reload once the API is reachable.[/bold red]")
        return 1
    except ReferenceDataError as e:
        logger.critical(f"Invalid reference data: {e}")
        console.print(f"[bold red]Error: {e}[/bold red]")
        return 1
    except ValueError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        return 2


if __name__ == "__main__":
    sys.exit(main())
