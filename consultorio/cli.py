from __future__ import annotations

import argparse
from datetime import date

from consultorio.auth_service import crear_token
from consultorio.consultorios import listar_consultorios
from consultorio.db import init_db
from consultorio.facturacion import reporte_facturacion
from consultorio.log import configure_logging
from consultorio.medicos import listar_medicos
from consultorio.obras_sociales import listar_obras_sociales
from consultorio.pacientes import crear_paciente, listar_pacientes
from consultorio.seed import seed_base
from consultorio.tipos_turno import listar_tipos_turno
from consultorio.turnos import cancelar_turno, listar_turnos, marcar_atendido


def cmd_init(args: argparse.Namespace) -> None:
    init_db()
    seed_base()
    print("Base inicializada y datos base cargados.")


def cmd_create_token(args: argparse.Namespace) -> None:
    tid = crear_token(args.tipo, args.token)
    print(f"Token de tipo {args.tipo!r} creado: {tid}")


def cmd_list(args: argparse.Namespace) -> None:
    if args.entity == "medicos":
        for m in listar_medicos(limit=args.limit):
            print(f"{m.id} | {m.apellido} {m.nombre} | {m.especialidad or '-'}")
    elif args.entity == "pacientes":
        for p in listar_pacientes(limit=args.limit):
            print(f"{p.id} | {p.apellido} {p.nombre} | DNI {p.numero_documento} | {p.obra_social or '-'}")
    elif args.entity == "consultorios":
        for c in listar_consultorios(limit=args.limit):
            print(f"{c.id} | {c.nombre}")
    elif args.entity == "tipos_turno":
        for t in listar_tipos_turno(limit=args.limit):
            print(f"{t.id} | {t.nombre} ({t.duracion_minutos} min)")
    elif args.entity == "obras_sociales":
        for o in listar_obras_sociales(limit=args.limit):
            print(f"{o.id} | {o.nombre} | {'activa' if o.activa else 'inactiva'}")
    elif args.entity == "turnos":
        dia = date.fromisoformat(args.fecha) if args.fecha else date.today()
        for t in listar_turnos(fecha=dia, limit=args.limit):
            print(
                f"{t['id']} | {t['fecha']} {t['hora']} | {t['estado']} | "
                f"{t['paciente_apellido']} {t['paciente_nombre']} | {t['medico_apellido'] or '-'}"
            )


def cmd_add_patient(args: argparse.Namespace) -> None:
    resultado = crear_paciente(
        {
            "nombre": args.nombre,
            "apellido": args.apellido,
            "numero_documento": args.documento,
            "telefono": args.telefono,
            "email": args.email,
            "obra_social": args.obra_social,
        }
    )
    if resultado.ok:
        print(f"Paciente creado: {resultado.data.id}")
    else:
        print(resultado.error)


def cmd_attend(args: argparse.Namespace) -> None:
    resultado = marcar_atendido(args.turno_id)
    print("Turno atendido." if resultado.ok else resultado.error)


def cmd_cancel(args: argparse.Namespace) -> None:
    resultado = cancelar_turno(args.turno_id, notas=args.notas)
    print("Turno cancelado." if resultado.ok else resultado.error)


def cmd_billing_report(args: argparse.Namespace) -> None:
    desde = date.fromisoformat(args.desde) if args.desde else None
    hasta = date.fromisoformat(args.hasta) if args.hasta else None
    r = reporte_facturacion(desde, hasta)
    print(f"Facturas: {r['cantidad']}")
    print(f"Total facturado: {r['total_facturado']:.2f}")
    print(f"Total pagado: {r['total_pagado']:.2f}")


def cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("consultorio.api_main:app", host=args.host, port=args.port, reload=args.reload)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="consultorio", description="CLI Consultorio (administración y reportes)")
    sub = p.add_subparsers(required=True)

    p_init = sub.add_parser("init", help="Crea la base y carga datos base")
    p_init.set_defaults(func=cmd_init)

    p_tok = sub.add_parser("create-token", help="Crea o reemplaza el token de acceso de un tipo")
    p_tok.add_argument("--tipo", required=True, help="ej.: admin, recepcion")
    p_tok.add_argument("--token", required=True)
    p_tok.set_defaults(func=cmd_create_token)

    p_list = sub.add_parser("list", help="Lista entidades")
    p_list.add_argument(
        "entity", choices=["medicos", "pacientes", "consultorios", "tipos_turno", "obras_sociales", "turnos"]
    )
    p_list.add_argument("--limit", type=int, default=50)
    p_list.add_argument("--fecha", default=None, help="Solo turnos: fecha ISO, por defecto hoy")
    p_list.set_defaults(func=cmd_list)

    p_addp = sub.add_parser("add-patient", help="Crea paciente")
    p_addp.add_argument("--nombre", required=True)
    p_addp.add_argument("--apellido", required=True)
    p_addp.add_argument("--documento", required=True)
    p_addp.add_argument("--telefono", default=None)
    p_addp.add_argument("--email", default=None)
    p_addp.add_argument("--obra-social", default=None)
    p_addp.set_defaults(func=cmd_add_patient)

    p_att = sub.add_parser("attend", help="Marca un turno como atendido")
    p_att.add_argument("--turno-id", required=True)
    p_att.set_defaults(func=cmd_attend)

    p_cancel = sub.add_parser("cancel", help="Cancela un turno")
    p_cancel.add_argument("--turno-id", required=True)
    p_cancel.add_argument("--notas", default=None)
    p_cancel.set_defaults(func=cmd_cancel)

    p_bill = sub.add_parser("billing-report", help="Reporte de facturación")
    p_bill.add_argument("--desde", default=None, help="Fecha ISO, ej.: 2026-01-01")
    p_bill.add_argument("--hasta", default=None)
    p_bill.set_defaults(func=cmd_billing_report)

    p_serve = sub.add_parser("serve", help="Levanta la API con uvicorn")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.add_argument("--reload", action="store_true")
    p_serve.set_defaults(func=cmd_serve)

    return p


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    configure_logging()
    init_db()  # garantiza las tablas
    args.func(args)


if __name__ == "__main__":
    main()
