#!filepath: temporal_eval/cli.py
from typing import Optional

import typer
from pydantic import ValidationError
from rich import print
from rich.markup import escape
from rich.table import Table

from temporal_eval import __version__, init_logging, logs
from temporal_eval.config.app_config import AppConfig
from temporal_eval.config.simulate_config import SimulateConfig
from temporal_eval.observability.instrumentation import Instrumentation
from temporal_eval.simulate.pipeline import SimulatePipeline
from temporal_eval.utils.errors import UserInputError

app = typer.Typer(help="Temporal replay evaluation for recommenders")


@app.command()
def version():
    print(f"v{__version__}")


@app.command()
def run(
    config: Optional[str] = typer.Argument(None, help="YAML config (defaults to the packaged base.yml)"),
    input_file: Optional[str] = typer.Option(None, "--input", "-i", help="ratings file"),
    output_file: Optional[str] = typer.Option(None, "--output", "-o", help="per-event table (.csv/.csv.gz/.parquet)"),
    extended_output_file: Optional[str] = typer.Option(None, "--extended-output", help="JSON Lines diagnostics"),
    rebuild_period: Optional[int] = typer.Option(None, "--rebuild-period", help="seconds between rebuilds"),
    list_size: Optional[int] = typer.Option(None, "--list-size", help="ranking list size"),
    seed: Optional[int] = typer.Option(None, "--seed", help="decoy sampling seed"),
    result_dir: Optional[str] = typer.Option(None, "--result-dir", help="where to write result.json"),
):
    """
    Replay a ratings file against a periodically rebuilt model.
    """
    try:
        app_cfg = AppConfig.load(config)
        init_logging(app_cfg.log)

        overrides = {
            "input_file": input_file,
            "output_file": output_file,
            "extended_output_file": extended_output_file,
            "rebuild_period": rebuild_period,
            "list_size": list_size,
            "seed": seed,
            "result_dir": result_dir,
        }
        overrides = {k: v for k, v in overrides.items() if v is not None}
        cfg = SimulateConfig.model_validate(
            {**app_cfg.simulate.model_dump(), **overrides}
        )

        inst = Instrumentation()
        ctx = SimulatePipeline.default(inst=inst).run(cfg)
    except (UserInputError, ValidationError, FileNotFoundError) as e:
        print(f"[red]error:[/red] {escape(str(e))}")
        raise typer.Exit(code=2)
    except Exception as e:
        # traceback already logged by TemporalEvaluator.run
        logs.error(f"[CLI] simulation failed: {e}")
        raise typer.Exit(code=1)

    res = ctx.result
    table = Table(title=f"Temporal replay: {res.name}")
    table.add_column("metric")
    table.add_column("value", justify="right")
    table.add_row("events", str(res.n_events))
    table.add_row("predictions", str(res.n_predictions))
    table.add_row("ranked", str(res.n_ranked))
    table.add_row("hits", str(res.n_hits))
    table.add_row("rebuilds", str(res.builds))
    table.add_row("RMSE", f"{res.rmse:.4f}")
    table.add_row("MRR", f"{res.mean_reciprocal_rank:.4f}")
    print(table)


if __name__ == "__main__":
    app()

# python -m temporal_eval.cli run config.yml --output out/predictions.csv
