"""CLI application entry point."""

import asyncio
import shutil
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

import httpx
import typer
import yaml
from pydantic import ValidationError

from skillforge.compiler.agent import (
    AnthropicSynthesizer,
    CompileOptions,
    CompileResult,
    compile_composition,
    preview_compilation,
)
from skillforge.config.loader import load_config
from skillforge.config.schema import SkillforgeConfig
from skillforge.core.errors import SkillforgeError
from skillforge.core.types import GitHubSource
from skillforge.graph.layout import layout_composition
from skillforge.graph.render import render_to_buffer, to_rich_text
from skillforge.loader import LoadedComposition, load_composition
from skillforge.resolve import ResolveContext, SkillCache, resolve_skill
from skillforge.resolve.parse import reconstruct_skill_md
from skillforge.utils.output import (
    console,
    print_error,
    print_info,
    print_success,
    print_warning,
    stats_table,
)
from skillforge.utils.paths import ensure_dir, expand_path, safe_filename

app = typer.Typer(
    name="skillforge",
    help="Compose skills into workflows and compile them into a single SKILL.md",
    no_args_is_help=True,
)

# Cache subcommand group
cache_app = typer.Typer(
    name="cache",
    help="Manage the cache of remote skills",
    no_args_is_help=True,
)
app.add_typer(cache_app, name="cache")


# Template for init command
TEMPLATE_COMPOSITION = """name: my-workflow
description: "Describe what the compiled skill should do"

skills:
  gather:
    instructions: |
      Collect the relevant context before doing anything else.
  # Skills can also come from local files or GitHub:
  # review:
  #   ref: "github:owner/repo/skills/review/SKILL.md@main"

composition:
  sequence:
    - use: gather
    - concurrent:
        - skill:
            name: check-logs
            instructions: Search the logs for errors.
        - skill:
            name: check-metrics
            instructions: Look for anomalies in the dashboards.
    - branch:
        when: "an anomaly was found"
        then:
          hydrate:
            config: {channel: "#incidents"}
            node:
              skill:
                name: notify
                instructions: Post a summary to the configured channel.
"""

CONFIG_OPTION_HELP = "Path to config file (overrides default search)"

DEFAULT_DEBOUNCE_MS = 500
WATCH_POLL_INTERVAL = 0.5  # seconds


def _load_settings(config: Optional[Path]) -> SkillforgeConfig:
    """Load configuration or exit with a readable error."""
    try:
        return load_config(config)
    except ValidationError as e:
        print_error("Configuration validation failed:")
        console.print(e)
        raise typer.Exit(1)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print_error(f"Failed to load config: {e}")
        raise typer.Exit(1)


def _resolve_context(cfg: SkillforgeConfig, force: bool = False) -> ResolveContext:
    return ResolveContext(
        cache_dir=expand_path(cfg.settings.cache_dir),
        ttl_seconds=cfg.settings.cache_ttl,
        force_refresh=force,
    )


def _load(file: Path, cfg: SkillforgeConfig, force: bool = False) -> LoadedComposition:
    return asyncio.run(load_composition(file, _resolve_context(cfg, force)))


def _compile_to_disk(
    file: Path,
    cfg: SkillforgeConfig,
    out: Optional[Path],
    name: Optional[str],
    description: Optional[str],
    model: Optional[str],
    force: bool,
) -> tuple[Path, CompileResult]:
    """Load, compile and write a composition; errors propagate to the caller."""
    loaded = _load(file, cfg, force)
    skill_name = name or loaded.name

    synthesizer = AnthropicSynthesizer(
        model=model or cfg.compiler.model,
        max_tokens=cfg.compiler.max_tokens,
        api_base=cfg.compiler.api_base,
    )
    print_info(f"Compiling '{skill_name}' with {synthesizer.model}")

    with console.status("Synthesizing skill..."):
        result = asyncio.run(
            compile_composition(
                loaded.node,
                CompileOptions(name=skill_name, description=description or loaded.description),
                synthesizer,
            )
        )

    out_dir = expand_path(str(out or cfg.settings.out_dir))
    target_dir = ensure_dir(out_dir / safe_filename(skill_name))
    output_path = target_dir / "SKILL.md"
    output_path.write_text(result.content, encoding="utf-8")
    return output_path, result


def _build_error_message(error: Exception) -> str:
    if isinstance(error, httpx.HTTPError):
        return f"Request failed: {error}"
    if isinstance(error, OSError):
        return f"Failed to write compiled skill: {error}"
    return str(error)


@app.command()
def build(
    file: Path = typer.Argument(..., help="Composition file (.py or .yaml)"),
    out: Optional[Path] = typer.Option(
        None,
        "--out",
        "-o",
        help="Output directory (overrides settings.out_dir)",
    ),
    name: Optional[str] = typer.Option(
        None, "--name", "-n", help="Name of the compiled skill"
    ),
    description: Optional[str] = typer.Option(
        None, "--description", "-d", help="Desired description of the compiled skill"
    ),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model override"),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Print what would be sent to the compiler without calling it",
    ),
    force: bool = typer.Option(False, "--force", help="Force refresh, bypass cache"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Compile a composition into a single SKILL.md.

    The compiled skill is written to <out>/<name>/SKILL.md.
    """
    cfg = _load_settings(config)

    try:
        if dry_run:
            loaded = _load(file, cfg, force)
            print_warning("DRY RUN MODE - The compiler will not be called")
            console.print(
                preview_compilation(
                    loaded.node, name or loaded.name, description or loaded.description
                ),
                markup=False,
                highlight=False,
            )
            return

        output_path, result = _compile_to_disk(
            file, cfg, out, name, description, model, force
        )
    except (SkillforgeError, httpx.HTTPError, OSError) as e:
        print_error(_build_error_message(e))
        raise typer.Exit(1)

    print_success(f"Wrote {output_path}")
    console.print(
        stats_table(
            {
                "Skills": result.metadata["skill_count"],
                "Patterns": ", ".join(result.metadata["patterns"]) or "simple",
                "Model": result.metadata["model"],
                "Input tokens": result.metadata["input_tokens"],
                "Output tokens": result.metadata["output_tokens"],
            }
        )
    )


def _file_mtime(path: Path) -> Optional[float]:
    try:
        return path.stat().st_mtime
    except OSError:
        return None


@app.command()
def watch(
    file: Path = typer.Argument(..., help="Composition file (.py or .yaml)"),
    out: Optional[Path] = typer.Option(
        None, "--out", "-o", help="Output directory (overrides settings.out_dir)"
    ),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Name of the compiled skill"),
    description: Optional[str] = typer.Option(
        None, "--description", "-d", help="Desired description of the compiled skill"
    ),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model override"),
    debounce: int = typer.Option(
        DEFAULT_DEBOUNCE_MS, "--debounce", min=0, help="Quiet period in ms before rebuilding"
    ),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Rebuild the composition whenever the file changes.

    Build failures are reported and watching continues. Stop with Ctrl+C.
    """
    cfg = _load_settings(config)

    def run_build(label: str) -> None:
        try:
            output_path, _ = _compile_to_disk(file, cfg, out, name, description, model, False)
        except (SkillforgeError, httpx.HTTPError, OSError) as e:
            print_error(f"{label}Build failed: {_build_error_message(e)}")
        else:
            print_success(f"{label}Wrote {output_path}")

    print_info(f"Watching {file.resolve()}")
    print_info("Press Ctrl+C to stop")
    run_build("")

    last_mtime = _file_mtime(file)
    try:
        while True:
            time.sleep(WATCH_POLL_INTERVAL)
            mtime = _file_mtime(file)
            if mtime is None or mtime == last_mtime:
                continue

            # Wait until the file stops changing
            while True:
                time.sleep(debounce / 1000)
                settled = _file_mtime(file)
                if settled == mtime:
                    break
                mtime = settled

            last_mtime = mtime
            label = f"[{datetime.now():%H:%M:%S}] "
            print_info(f"{label}File changed, rebuilding...")
            run_build(label)
    except KeyboardInterrupt:
        print_info("Stopped watching")


@app.command()
def preview(
    file: Path = typer.Argument(..., help="Composition file (.py or .yaml)"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Skill name override"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Show the composition as the compiler would see it."""
    cfg = _load_settings(config)

    try:
        loaded = _load(file, cfg)
    except SkillforgeError as e:
        print_error(str(e))
        raise typer.Exit(1)
    except httpx.HTTPError as e:
        print_error(f"Request failed: {e}")
        raise typer.Exit(1)

    console.print(
        preview_compilation(loaded.node, name or loaded.name, loaded.description),
        markup=False,
        highlight=False,
    )


@app.command()
def show(
    file: Path = typer.Argument(..., help="Composition file (.py or .yaml)"),
    select: Optional[str] = typer.Option(
        None, "--select", "-s", help="Id of the node to highlight (e.g. node-3)"
    ),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Draw the composition as a box diagram."""
    cfg = _load_settings(config)

    try:
        loaded = _load(file, cfg)
    except SkillforgeError as e:
        print_error(str(e))
        raise typer.Exit(1)
    except httpx.HTTPError as e:
        print_error(f"Request failed: {e}")
        raise typer.Exit(1)

    graph = layout_composition(loaded.node, selected_id=select)
    if select and graph.find(select) is None:
        print_warning(f"No node with id '{select}'")

    console.print(f"[bold]{loaded.name}[/bold]")
    console.print(to_rich_text(render_to_buffer(graph)), soft_wrap=True)


@app.command()
def add(
    source: str = typer.Argument(
        ...,
        help=(
            "Skill reference: local path, github:owner/repo/path (prefix optional) "
            "or git:url/path; append @ref to pin a version"
        ),
    ),
    out: Optional[Path] = typer.Option(
        None, "--out", "-o", help="Output directory (overrides settings.out_dir)"
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing skill"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Fetch a skill and install it as <out>/<name>/SKILL.md."""
    cfg = _load_settings(config)

    try:
        skill = asyncio.run(resolve_skill(source, _resolve_context(cfg, force)))

        target_dir = expand_path(str(out or cfg.settings.out_dir)) / safe_filename(skill.name)
        output_path = target_dir / "SKILL.md"
        if output_path.exists() and not force:
            print_error(f"Skill already exists: {output_path}")
            print_info("Use --force to overwrite")
            raise typer.Exit(1)

        ensure_dir(target_dir)
        output_path.write_text(reconstruct_skill_md(skill), encoding="utf-8")
        if isinstance(skill.source, GitHubSource):
            print_info(f"Fetched from {skill.source.url}")
        print_success(f"Added '{skill.name}' to {output_path}")

    except typer.Exit:
        raise
    except SkillforgeError as e:
        print_error(str(e))
        raise typer.Exit(1)
    except Exception as e:
        print_error(f"Failed to add skill: {e}")
        raise typer.Exit(1)


@app.command()
def init(
    path: Optional[Path] = typer.Argument(
        None,
        help="Path where the composition should be created (default: ./composition.yaml)",
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite existing file"),
):
    """Create a composition.yaml template."""
    if path is None:
        path = Path.cwd() / "composition.yaml"

    if path.exists() and not force:
        print_error(f"File already exists: {path}")
        print_info("Use --force to overwrite")
        raise typer.Exit(1)

    try:
        path.write_text(TEMPLATE_COMPOSITION)
    except OSError as e:
        print_error(f"Failed to create composition: {e}")
        raise typer.Exit(1)

    print_success(f"Created composition file: {path}")
    print_info(f"Run 'skillforge show {path.name}' to see it")


@cache_app.command("clear")
def cache_clear(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Remove cached GitHub files and git clones."""
    cfg = _load_settings(config)
    cache_root = expand_path(cfg.settings.cache_dir)

    removed = SkillCache(cache_root / "github").clear()

    git_dir = cache_root / "git"
    if git_dir.exists():
        removed += sum(1 for item in git_dir.iterdir() if item.is_dir())
        shutil.rmtree(git_dir, ignore_errors=True)

    print_success(f"Removed {removed} cached item(s) from {cache_root}")


if __name__ == "__main__":
    app()
