"""
Herd records from the command line.

Usage:
    piara list --state parto
    piara show C-014
    piara serve C-014 --boar V-02
    piara farrow C-014 --alive 12 --stillborn 1
    piara wean C-014 --weaned 11 --weight 6.8
    piara agenda --date 2024-04-22
    piara stats
"""

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from enum import Enum

from piara.core.client import StoreError
from piara.core.config import log_error
from piara.core.models import EVENT_LABELS, STATE_LABELS, Event, EventType, Sow, SowState
from piara.core.store import SupabaseStore
from piara.data import boars, dashboard, herd, incidents
from piara.lifecycle import recorder
from piara.lifecycle.state import LifecycleError


def _json_default(value):
    if isinstance(value, Enum):
        return value.value
    return str(value)


def print_json(obj) -> None:
    if isinstance(obj, list):
        obj = [asdict(o) for o in obj]
    else:
        obj = asdict(obj)
    print(json.dumps(obj, indent=2, default=_json_default, ensure_ascii=False))


def format_sow_line(sow: Sow) -> str:
    state = STATE_LABELS[sow.estado]
    return f"{sow.codigo:<12} {sow.nombre or '':<16} {state:<12} P{sow.paridad}"


def format_event_line(event: Event) -> str:
    label = EVENT_LABELS[event.tipo_evento]
    datos = event.datos
    detail = ""
    if event.tipo_evento == EventType.CUBRICION and datos.verraco_codigo:
        detail = f"boar {datos.verraco_codigo}"
    elif event.tipo_evento == EventType.PARTO:
        detail = f"{datos.nacidos_vivos} alive, {datos.nacidos_muertos} stillborn, {datos.momificados} mummified"
        if datos.destetados is not None:
            detail += f" -> {datos.destetados} weaned"
    elif event.tipo_evento == EventType.DESTETE:
        detail = f"{datos.lechones_destetados} weaned"
        if datos.peso_medio_kg is not None:
            detail += f" @ {datos.peso_medio_kg} kg"

    line = f"{event.fecha.isoformat()}  {label:<10} {detail}"
    if event.notas:
        line += f"  ({event.notas})"
    return line.rstrip()


def print_sow(sow: Sow, history: list[Event]) -> None:
    print(f"ID: {sow.id}")
    print(f"Code: {sow.codigo}")
    print(f"Name: {sow.nombre or '-'}")
    print(f"State: {STATE_LABELS[sow.estado]}")
    print(f"Parity: {sow.paridad}")
    print(f"Barn: {sow.nave or '-'}")
    print(f"Origin: {sow.origen or '-'}")
    print(f"Active: {sow.activa}")
    if sow.medios_historicos:
        m = sow.medios_historicos
        print(f"Averages: {m.nacidos_vivos} born alive, {m.destetados} weaned, {m.viabilidad}% viability")
    print()
    print(f"Events ({len(history)}):")
    for event in history:
        print(f"  {format_event_line(event)}")


async def cli_main(argv: list[str] | None = None) -> None:
    """CLI entry point for herd records."""
    parser = argparse.ArgumentParser(description="Breeding sow records")
    subparsers = parser.add_subparsers(dest="command", help="Command")

    # list command
    list_parser = subparsers.add_parser("list", help="List active sows")
    list_parser.add_argument("--state", choices=[s.value for s in SowState], help="Filter by state")
    list_parser.add_argument("--search", help="Match code or name")
    list_parser.add_argument("--incidents", action="store_true", help="Only sows with incidents in the last 30 days")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # show command
    show_parser = subparsers.add_parser("show", help="Show a sow and its events")
    show_parser.add_argument("id", help="Sow ID or code")
    show_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # register command
    register_parser = subparsers.add_parser("register", help="Register a new sow")
    register_parser.add_argument("codigo", help="Herd code")
    register_parser.add_argument("--name", help="Name")
    register_parser.add_argument("--origin", help="Origin")
    register_parser.add_argument("--barn", help="Barn (nave)")
    register_parser.add_argument("--born", help="Birth date (YYYY-MM-DD)")

    # edit command - administrative override
    edit_parser = subparsers.add_parser("edit", help="Override a sow's details, state or parity")
    edit_parser.add_argument("id", help="Sow ID or code")
    edit_parser.add_argument("--code", help="New herd code")
    edit_parser.add_argument("--name", help="Name")
    edit_parser.add_argument("--origin", help="Origin")
    edit_parser.add_argument("--barn", help="Barn (nave)")
    edit_parser.add_argument("--parity", type=int, help="Parity")
    edit_parser.add_argument("--state", choices=[s.value for s in SowState], help="State")

    # deactivate command
    deactivate_parser = subparsers.add_parser("deactivate", help="Remove a sow from the active herd")
    deactivate_parser.add_argument("id", help="Sow ID or code")

    # event commands
    serve_parser = subparsers.add_parser("serve", help="Record a service (cubrición)")
    serve_parser.add_argument("id", help="Sow ID or code")
    serve_parser.add_argument("--boar", help="Boar ID or code")

    farrow_parser = subparsers.add_parser("farrow", help="Record a farrowing (parto)")
    farrow_parser.add_argument("id", help="Sow ID or code")
    farrow_parser.add_argument("--alive", type=int, required=True, help="Born alive")
    farrow_parser.add_argument("--stillborn", type=int, default=0, help="Born dead")
    farrow_parser.add_argument("--mummified", type=int, default=0, help="Mummified")

    wean_parser = subparsers.add_parser("wean", help="Record a weaning (destete)")
    wean_parser.add_argument("id", help="Sow ID or code")
    wean_parser.add_argument("--weaned", type=int, required=True, help="Piglets weaned")
    wean_parser.add_argument("--weight", type=float, help="Average weaning weight (kg)")

    log_parser = subparsers.add_parser("log", help="Log a gestation, ultrasound or cull event")
    log_parser.add_argument("id", help="Sow ID or code")
    log_parser.add_argument("type", choices=[t.value for t in recorder.LOG_ONLY_EVENTS], help="Event type")

    for event_parser in (serve_parser, farrow_parser, wean_parser, log_parser):
        event_parser.add_argument("--date", help="Event date (YYYY-MM-DD, default today)")
        event_parser.add_argument("--notes", help="Notes (max 500 characters)")

    edit_event_parser = subparsers.add_parser("edit-event", help="Change an event's date or notes")
    edit_event_parser.add_argument("event_id", help="Event ID")
    edit_event_parser.add_argument("--date", help="New date (YYYY-MM-DD)")
    edit_event_parser.add_argument("--notes", help="New notes (empty string clears)")

    rebuild_parser = subparsers.add_parser("rebuild", help="Recompute parity and averages from events")
    rebuild_parser.add_argument("id", help="Sow ID or code")

    # agenda command
    agenda_parser = subparsers.add_parser("agenda", help="What is due on a day")
    agenda_parser.add_argument("--date", help="Day to check (YYYY-MM-DD, default today)")

    # stats command
    subparsers.add_parser("stats", help="Herd dashboard statistics")

    # incident commands
    incidents_parser = subparsers.add_parser("incidents", help="List incidents")
    incidents_parser.add_argument("--sow", help="Sow ID or code")
    incidents_parser.add_argument("--days", type=int, help="Only the last N days")
    incidents_parser.add_argument("--open", action="store_true", help="Only unresolved incidents")

    incident_parser = subparsers.add_parser("incident", help="Report an incident")
    incident_parser.add_argument("id", help="Sow ID or code")
    incident_parser.add_argument("text", help="Description")

    resolve_parser = subparsers.add_parser("resolve", help="Mark an incident resolved")
    resolve_parser.add_argument("incident_id", help="Incident ID")
    resolve_parser.add_argument("--reopen", action="store_true", help="Mark it unresolved instead")

    # boars command
    subparsers.add_parser("boars", help="List active boars")

    args = parser.parse_args(argv)
    store = SupabaseStore()

    if args.command == "list":
        state = SowState(args.state) if args.state else None
        sows = await herd.list_sows(store, estado=state, search=args.search, with_recent_incidents=args.incidents)
        if args.json:
            print_json(sows)
        else:
            for sow in sows:
                print(format_sow_line(sow))
            print(f"\n{len(sows)} sows")

    elif args.command == "show":
        sow = await herd.find_sow(store, args.id)
        history = await herd.sow_history(store, sow.id)
        if args.json:
            print_json(sow)
        else:
            print_sow(sow, history)

    elif args.command == "register":
        sow = await herd.register_sow(
            store, args.codigo, nombre=args.name, origen=args.origin, nave=args.barn, fecha_nacimiento=args.born
        )
        print(f"Registered {sow.codigo} ({sow.id})")

    elif args.command == "edit":
        sow = await herd.find_sow(store, args.id)
        changes = {
            "codigo": args.code,
            "nombre": args.name,
            "origen": args.origin,
            "nave": args.barn,
            "paridad": args.parity,
            "estado": args.state,
        }
        sow = await herd.update_sow(store, sow.id, **{k: v for k, v in changes.items() if v is not None})
        print(format_sow_line(sow))

    elif args.command == "deactivate":
        sow = await herd.find_sow(store, args.id)
        await herd.deactivate_sow(store, sow.id)
        print(f"Deactivated {sow.codigo}")

    elif args.command in ("serve", "farrow", "wean", "log"):
        sow = await herd.find_sow(store, args.id)
        if args.command == "serve":
            boar = await boars.find_boar(store, args.boar) if args.boar else None
            result = await recorder.record_service(store, sow.id, boar=boar, fecha=args.date, notas=args.notes)
        elif args.command == "farrow":
            result = await recorder.record_farrowing(
                store,
                sow.id,
                args.alive,
                nacidos_muertos=args.stillborn,
                momificados=args.mummified,
                fecha=args.date,
                notas=args.notes,
            )
        elif args.command == "wean":
            result = await recorder.record_weaning(
                store, sow.id, args.weaned, peso_medio_kg=args.weight, fecha=args.date, notas=args.notes
            )
        else:
            result = await recorder.record_event(
                store, sow.id, EventType(args.type), fecha=args.date, notas=args.notes
            )

        print(f"Recorded: {format_event_line(result.event)}")
        print(f"Sow now:  {format_sow_line(result.sow)}")
        if args.command == "wean" and result.sow.medios_historicos:
            m = result.sow.medios_historicos
            print(f"Averages: {m.nacidos_vivos} born alive, {m.destetados} weaned, {m.viabilidad}% viability")

    elif args.command == "edit-event":
        event = await recorder.edit_event(store, args.event_id, fecha=args.date, notas=args.notes)
        print(f"Updated: {format_event_line(event)}")

    elif args.command == "rebuild":
        sow = await herd.find_sow(store, args.id)
        sow = await recorder.rebuild_sow(store, sow.id)
        print(format_sow_line(sow))
        if sow.medios_historicos:
            m = sow.medios_historicos
            print(f"Averages: {m.nacidos_vivos} born alive, {m.destetados} weaned, {m.viabilidad}% viability")

    elif args.command == "agenda":
        agenda = await dashboard.get_agenda(store, args.date)
        print(f"Agenda for {agenda.day.isoformat()}\n")
        print(f"Expected farrowings ({len(agenda.farrowings)}):")
        for item in agenda.farrowings:
            print(f"  {item.sow.codigo:<12} {item.expected_date.isoformat()}  {item.when}")
        print(f"\nPregnancy checks ({len(agenda.checkups)}):")
        for item in agenda.checkups:
            print(f"  {item.sow.codigo:<12} {item.expected_date.isoformat()}  {item.when}")
        print(f"\nReady for service ({len(agenda.ready_for_service)}):")
        for sow in agenda.ready_for_service:
            print(f"  {format_sow_line(sow)}")
        print(f"\nWaiting to be weaned ({len(agenda.pending_weaning)}):")
        for sow in agenda.pending_weaning:
            print(f"  {format_sow_line(sow)}")

    elif args.command == "stats":
        stats = await dashboard.get_dashboard_stats(store)
        print(f"Active sows: {stats.total_sows}\n")
        print("By state:")
        for state in SowState:
            count = stats.by_state.get(state.value, 0)
            if count:
                print(f"  {STATE_LABELS[state]}: {count}")
        print(f"\nOpen incidents: {stats.open_incidents} ({stats.incidents_last_24h} in the last 24h)")
        print(f"Mean born alive: {stats.mean_born_alive}")
        print(f"Mean weaned:     {stats.mean_weaned}")
        print(f"Mean viability:  {stats.mean_viability}%")
        print(f"Dry for over {dashboard.PROLONGED_DRY_DAYS} days: {stats.prolonged_dry}")

    elif args.command == "incidents":
        sow_id = (await herd.find_sow(store, args.sow)).id if args.sow else None
        found = await incidents.list_incidents(store, sow_id=sow_id, days=args.days, open_only=args.open)
        for inc in found:
            mark = "x" if inc.resuelta else " "
            when = inc.fecha_hora.strftime("%Y-%m-%d %H:%M") if inc.fecha_hora else "?"
            print(f"[{mark}] {when}  {inc.cerda_codigo or inc.cerda_id:<12} {inc.texto}")
        print(f"\n{len(found)} incidents")

    elif args.command == "incident":
        sow = await herd.find_sow(store, args.id)
        inc = await incidents.report_incident(store, sow.id, args.text)
        print(f"Reported incident {inc.id} for {sow.codigo}")

    elif args.command == "resolve":
        inc = await incidents.resolve_incident(store, args.incident_id, resuelta=not args.reopen)
        print(f"Incident {inc.id} {'resolved' if inc.resuelta else 'reopened'}")

    elif args.command == "boars":
        for boar in await boars.list_boars(store):
            print(f"{boar.codigo:<12} {boar.nombre or '':<16} {boar.raza or ''}")

    else:
        parser.print_help()


def cli() -> None:
    """Sync CLI entry point."""
    try:
        asyncio.run(cli_main())
    except (LifecycleError, StoreError) as e:
        log_error("cli", e)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    cli()
