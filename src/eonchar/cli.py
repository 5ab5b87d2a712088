import logging
import random
from typing import Optional
import typer
from rich.console import Console
from rich.table import Table
from eonchar.engine.ages import roll_character_age
from eonchar.engine.dice import DiceNotationError, roll_dice_str
from eonchar.engine.expr import expr_cache_info
from eonchar.engine.family import FamilyEngine
from eonchar.engine.loader import load_content, ContentIndex
from eonchar.engine.rng import make_rng
from eonchar.engine.schema_models import STATUS_LABELS_SV, Race
from eonchar.engine.settings import load_settings, Settings
from eonchar.engine.trace import TraceSession
from eonchar.util.paths import content_dir

app = typer.Typer(add_completion=False)
console = Console()

def _setup(seed: Optional[int]) -> tuple[Settings, random.Random]:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    return settings, make_rng(settings, seed)

def _content(settings: Settings) -> ContentIndex:
    return load_content(content_dir(settings.default_content_dir))

def _race_or_exit(content: ContentIndex, name: str) -> Race:
    try:
        return content.get_race(name)
    except KeyError:
        typer.echo(f"[ERROR] Unknown race {name!r}; known: {', '.join(sorted(content.races))}", err=True)
        raise typer.Exit(code=2)

def _print_trace(trace: TraceSession) -> None:
    for line in trace.dump():
        console.print(line, markup=False, highlight=False)

@app.command()
def roll(dice: str, seed: Optional[int] = typer.Option(None, "--seed")):
    """Roll one dice token: 3T6, 1T10, 2T100 or Ob2T6."""
    _settings, rng = _setup(seed)
    try:
        res = roll_dice_str(rng, dice)
    except DiceNotationError as e:
        typer.echo(f"[ERROR] {e}", err=True)
        raise typer.Exit(code=2)
    if res.open_ended is not None:
        ob = res.open_ended
        extra = f" + {ob.extra_rolls}" if ob.extra_rolls else ""
        flags = [n for n, on in (("möjlig perfekt", ob.potential_perfect), ("möjlig fummel", ob.potential_fumble)) if on]
        typer.echo(f"{res.notation}: {ob.initial_rolls}{extra} = {res.total}" + (f" ({', '.join(flags)})" if flags else ""))
    else:
        typer.echo(f"{res.notation}: {res.results} = {res.total}")

@app.command()
def age(bil: int = typer.Option(..., "--bil"), race: Optional[str] = typer.Option(None, "--race"),
        seed: Optional[int] = typer.Option(None, "--seed")):
    """Roll a character's age: BIL + Ob3T6."""
    settings, rng = _setup(seed)
    mapping = None
    if race:
        content = _content(settings)
        cat = content.category_for(_race_or_exit(content, race))
        mapping = cat.age_mapping if cat else None
    trace = TraceSession()
    res = roll_character_age(rng, bil, mapping, trace)
    table = Table(title="Ålder", show_header=False, pad_edge=False)
    table.add_row("BIL", str(res.bil))
    table.add_row("Ob3T6", f"{res.roll.all_rolls} = {res.roll.total}")
    table.add_row("Ålder", str(res.age))
    table.add_row("Skenbar ålder", str(res.apparent_age))
    table.add_row("Bonus", str(res.bonus))
    console.print(table)
    _print_trace(trace)

def _siblings_table(eng: FamilyEngine) -> Table:
    table = Table(title="Syskon")
    for col in ("Kull", "Plats", "Ålder", "Kön", "Relation"):
        table.add_column(col)
    for s in eng.state.siblings:
        table.add_row(str(s.litter), str(s.position), str(s.age), s.gender, s.relationship)
    return table

def _parents_table(eng: FamilyEngine) -> Table:
    st = eng.state
    table = Table(title="Föräldrar", show_header=False, pad_edge=False)
    if st.parent_roll:
        status = st.parent_roll.status
        table.add_row("Slag", f"{st.parent_roll.formula} = {st.parent_roll.result}")
        table.add_row("Status", STATUS_LABELS_SV.get(status, status))
    for label, res in (("Mor", st.mother_age), ("Far", st.father_age)):
        if res is not None:
            table.add_row(label, f"{res.actual_age} år (ser ut som {res.apparent_age}, bas {res.base_age})")
    return table

@app.command()
def family(
    age: int = typer.Option(..., "--age", help="Character's actual age"),
    race: Optional[str] = typer.Option(None, "--race"),
    rerolls: Optional[int] = typer.Option(None, "--rerolls"),
    seed: Optional[int] = typer.Option(None, "--seed"),
    as_json: bool = typer.Option(False, "--json", help="Print the session state as JSON"),
    show_cache: bool = typer.Option(False, "--cache-info"),
):
    """Roll siblings, parent status and parent ages for one character."""
    settings, rng = _setup(seed)
    budget = settings.default_rerolls if rerolls is None else rerolls
    if budget < 0:
        typer.echo(f"[ERROR] --rerolls must be 0 or more, got {budget}", err=True)
        raise typer.Exit(code=2)
    trace = TraceSession()
    if race:
        content = _content(settings)
        eng = FamilyEngine.for_race(content, _race_or_exit(content, race).name, age, rng, rerolls=budget, trace=trace)
    else:
        eng = FamilyEngine(rng, trace=trace)
        eng.state.character_age = age
        eng.state.budget.remaining = budget

    eng.roll_all_siblings()
    eng.roll_parents()
    eng.roll_mother_age()
    eng.roll_father_age()

    if as_json:
        typer.echo(eng.state.model_dump_json(indent=2))
        return
    console.print(_siblings_table(eng))
    console.print(_parents_table(eng))
    _print_trace(trace)
    if show_cache:
        typer.echo(expr_cache_info())

if __name__ == "__main__":
    app()
