"""
Backend del Consultorio (gestión de pacientes, turnos y facturación).

Estructura:
- config.py / log.py    : configuración (.env) y logging
- db.py / models.py     : engine, sesiones SQLAlchemy y modelos ORM
- errors.py             : resultado de operaciones y traducción de errores de la base
- pacientes.py, medicos.py, turnos.py, ... : repositorios por entidad
- facturacion.py        : facturas, pagos y reporte de facturación
- reportes.py           : listados del dashboard y exportación CSV
- crud.py               : alta / modificación / baja desde formularios
- auth_*.py             : tokens de acceso compartidos y cookie de sesión
- api_main.py           : API FastAPI
- seed.py               : datos iniciales (tipos de turno, consultorios, obras sociales)
- cli.py                : administración por línea de comandos
"""
