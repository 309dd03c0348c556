from typing import Callable, Dict, List, Optional

try:
    import typer
except ImportError:
    typer = None

from recipes.messaging.bus import bus as messaging_bus
from recipes.providers.registry import ResourceRegistry
from recipes.spec.recipe import Mode, RecipeNode


def _parse_inputs(values: List[str]) -> Dict[str, str]:
    inputs: Dict[str, str] = {}
    for value in values:
        name, sep, raw = value.partition("=")
        if not sep or not name:
            messaging_bus.error("cli.invalid_input", value=value)
            raise typer.Exit(code=2)
        inputs[name] = raw
    return inputs


def create_cli(
    recipe: RecipeNode, registry: Optional[ResourceRegistry] = None
) -> Callable[[], None]:
    """
    Builds a command line application that plans or applies the given
    recipe and prints the resulting plan as JSON on stdout.
    """
    if typer is None:
        raise ImportError(
            "The 'typer' library is required to use the cli tool. "
            "Please install it with: pip install recipes-engine[cli]"
        )

    app = typer.Typer()

    def main(
        mode: Mode = typer.Option(
            Mode.PLAN, "--mode", help="Whether to only plan the recipe or apply it."
        ),
        input_values: List[str] = typer.Option(
            [], "--input", "-i", help="Recipe input as KEY=VALUE. Repeatable."
        ),
        concurrency: int = typer.Option(
            5, "--concurrency", help="Maximum number of concurrent resource operations."
        ),
        log_level: str = typer.Option(
            "INFO",
            "--log-level",
            help="Minimum level for console logging (DEBUG, INFO, WARNING, ERROR).",
        ),
        log_format: str = typer.Option(
            "human", "--log-format", help="Format for logging ('human' or 'json')."
        ),
    ):
        from recipes import run as recipes_run

        inputs = _parse_inputs(input_values)
        try:
            plan = recipes_run(
                recipe,
                inputs=inputs,
                mode=mode,
                log_level=log_level,
                log_format=log_format,
                registry=registry,
                concurrency=concurrency,
            )
        except Exception as e:
            messaging_bus.error("cli.run_failed", error=f"{type(e).__name__}: {e}")
            raise typer.Exit(code=1)

        print(plan.to_json(indent=2))
        if plan.errors:
            raise typer.Exit(code=1)

    app.command()(main)
    return app


def cli(recipe: RecipeNode, registry: Optional[ResourceRegistry] = None) -> None:
    """Builds the command line application for a recipe and runs it."""
    create_cli(recipe, registry=registry)()
