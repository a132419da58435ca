"""
Customer-facing reply templates (WhatsApp markdown).

Each builder returns the full text of one reply. Keep the wording in one
place so the router and the dispatcher never format messages inline.
"""

from collections.abc import Iterable

SEPARATOR = "━━━━━━━━━━━━━━━━"

_NUMBER_EMOJI = ["1️⃣", "2️⃣", "3️⃣", "4️⃣", "5️⃣", "6️⃣", "7️⃣", "8️⃣", "9️⃣", "🔟"]


def help_text() -> str:
    return (
        "ℹ️ *Ayuda - Programa de Fidelidad*\n"
        "\n"
        "*Comandos disponibles:*\n"
        "\n"
        "📊 *PUNTOS* - Ver tu balance de puntos\n"
        "🎯 *RETOS* - Ver retos disponibles\n"
        "🆘 *AYUDA* - Ver este mensaje\n"
        "🛑 *STOP* - Darse de baja del programa\n"
        "\n"
        "*¿Cómo acumular puntos?*\n"
        "1. Visita nuestras sucursales\n"
        "2. Realiza un check-in\n"
        "3. Completa retos para ganar puntos\n"
        "4. Canjea por gift cards\n"
        "\n"
        "¿Necesitas más ayuda? Escríbenos directamente."
    )


def welcome_text(name: str, phone: str) -> str:
    return (
        f"¡Hola {name}! 👋\n"
        "\n"
        "Bienvenido a nuestro programa de fidelidad.\n"
        "\n"
        "🎁 Has sido registrado exitosamente\n"
        f"📱 Tu número: {phone}\n"
        "⭐ Puntos iniciales: 0\n"
        "\n"
        "Cada vez que visites nuestras sucursales y realices un check-in, "
        "acumularás puntos que podrás canjear por gift cards y premios.\n"
        "\n"
        "*Comandos disponibles:*\n"
        "• PUNTOS - Ver tu balance\n"
        "• RETOS - Ver retos disponibles\n"
        "• AYUDA - Obtener ayuda\n"
        "\n"
        "¿Tienes alguna pregunta? ¡Estamos para ayudarte!"
    )


def opt_out_text() -> str:
    return (
        "✅ Has sido dado de baja del programa.\n"
        "\n"
        "Ya no recibirás mensajes automáticos de nuestra parte.\n"
        "\n"
        "Si cambias de opinión, simplemente envíanos un mensaje y te "
        "reactivaremos. ¡Gracias por participar!"
    )


def balance_empty_text(name: str) -> str:
    return (
        "⭐ *Balance de Puntos*\n"
        "\n"
        f"Hola {name},\n"
        "\n"
        "Aún no tienes puntos registrados en ningún negocio.\n"
        "\n"
        "Comienza a acumular puntos visitando nuestras sucursales y "
        "escaneando el código QR. 🎁"
    )


def balance_text(name: str, entries: list) -> str:
    """Balance breakdown. ``entries`` are LedgerEntry rows with ``tenant`` loaded."""
    if not entries:
        return balance_empty_text(name)

    total_points = sum(e.total_points for e in entries)
    total_visits = sum(e.visits_count for e in entries)

    lines = [
        "⭐ *Balance de Puntos*",
        "",
        f"Hola {name}, aquí está tu resumen:",
        "",
        f"📊 *Total general:* {total_points} puntos",
        f"🏪 *Visitas totales:* {total_visits} visitas",
        f"🏢 *Negocios registrados:* {len(entries)}",
        "",
        SEPARATOR,
        "*Desglose por negocio:*",
    ]
    for index, entry in enumerate(entries, start=1):
        if index > 1:
            lines.append("")
        lines.append(f"{index}. *{entry.tenant.name}*")
        lines.append(f"   📍 {entry.tenant.address or 'N/A'}")
        lines.append(f"   ⭐ {entry.total_points} puntos")
        lines.append(f"   🏪 {entry.visits_count} visitas")
    lines += [SEPARATOR, "", "¡Sigue acumulando puntos para canjear por gift cards! 🎁"]
    return "\n".join(lines)


def tenant_not_found_text(tenant_name: str) -> str:
    return (
        "❌ *Negocio no encontrado*\n"
        "\n"
        f'No encontramos el negocio "{tenant_name}".\n'
        "\n"
        "Por favor verifica el nombre del negocio y vuelve a intentar, "
        "o contacta con el personal."
    )


def checkin_text(
    tenant_name: str,
    branch_name: str,
    points: int,
    total_points: int,
    visits: int,
    first_visit: bool,
) -> str:
    first = (
        "🎉 ¡Es tu primera visita a este negocio! Has sido registrado.\n\n"
        if first_visit
        else ""
    )
    return (
        "✅ *Check-in exitoso*\n"
        "\n"
        f"¡Bienvenido a *{tenant_name}*!\n"
        f"📍 Sucursal: {branch_name}\n"
        "\n"
        f"{first}"
        f"🎁 *Puntos ganados:* {points} puntos\n"
        f"⭐ *Total de puntos en {tenant_name}:* {total_points} puntos\n"
        f"🏪 *Visitas a {tenant_name}:* {visits} visitas\n"
        "\n"
        "¡Gracias por visitarnos! Sigue acumulando puntos para obtener recompensas.\n"
        "\n"
        "Envía *PUNTOS* para ver tu balance completo."
    )


def checkin_failed_text() -> str:
    return (
        "❌ Hubo un error al procesar tu check-in. Por favor intenta "
        "nuevamente o contacta con el personal."
    )


def challenges_teaser_text(tenant_name: str, challenges: Iterable) -> str:
    """Challenges of one tenant, sent right after a check-in."""
    lines = [f"🎯 *Retos Disponibles en {tenant_name}*", ""]
    for index, challenge in enumerate(challenges):
        marker = _NUMBER_EMOJI[index] if index < len(_NUMBER_EMOJI) else f"{index + 1}."
        if index:
            lines.append("")
        lines.append(f"{marker} *{challenge.name}*")
        if challenge.description:
            lines.append(f"   📝 {challenge.description}")
        lines.append(f"   ⭐ Puntos: {challenge.points}")
    lines += ["", SEPARATOR, "💡 Completa estos retos para ganar más puntos."]
    return "\n".join(lines)


def challenges_no_tenants_text(name: str) -> str:
    return (
        "🎯 *Retos Disponibles*\n"
        "\n"
        f"Hola {name},\n"
        "\n"
        "Aún no has hecho check-in en ningún negocio.\n"
        "\n"
        "Para ver los retos disponibles, primero debes visitar un negocio y "
        "escanear el código QR para hacer check-in. 📱\n"
        "\n"
        "Una vez registrado, podrás ver todos los retos disponibles y ganar "
        "puntos extra. 🎁"
    )


def challenges_text(name: str, groups: list[tuple]) -> str:
    """
    Challenges across the customer's tenants.

    ``groups`` is a list of ``(tenant, [challenge, ...])``; tenants without
    running challenges are skipped.
    """
    groups = [(tenant, list(items)) for tenant, items in groups if items]
    if not groups:
        return (
            "🎯 *Retos Disponibles*\n"
            "\n"
            f"Hola {name},\n"
            "\n"
            "Actualmente no hay retos activos en tus negocios.\n"
            "\n"
            "¡Estate atento! Los negocios publican nuevos retos regularmente. 🎁"
        )

    lines = [
        "🎯 *Retos Disponibles*",
        "",
        f"Hola {name}, estos son los retos activos en tus negocios:",
        "",
    ]
    for tenant, items in groups:
        lines.append(SEPARATOR)
        lines.append(f"🏢 *{tenant.name}*")
        lines.append(f"📍 {tenant.address or 'N/A'}")
        lines.append("")
        for index, challenge in enumerate(items, start=1):
            lines.append(f"{index}. *{challenge.name}*")
            if challenge.description:
                lines.append(f"   📝 {challenge.description}")
            lines.append(f"   ⭐ Puntos: {challenge.points}")
            lines.append("")
    lines += [
        SEPARATOR,
        "💡 Completa estos retos para ganar más puntos.",
        "",
        "Envía *PUNTOS* para ver tu balance actual.",
    ]
    return "\n".join(lines)


def business_confirmation_text(tenant_name: str, branch_name: str = "") -> str:
    branch = f"📍 Sucursal: {branch_name}\n" if branch_name else ""
    return (
        "✅ Información registrada:\n"
        "\n"
        f"🏢 Negocio: {tenant_name}\n"
        f"{branch}"
        "\n"
        "¡Gracias por tu interés! Pronto recibirás más información."
    )


def reward_issued_text(code: str, value, points: int, expires_at) -> str:
    return (
        "🎁 *¡Gift Card Generada!*\n"
        "\n"
        f"Has canjeado {points} puntos por una gift card de ${value}.\n"
        "\n"
        f"🔑 Código: *{code}*\n"
        f"📅 Válida hasta: {expires_at:%d/%m/%Y}\n"
        "\n"
        "Presenta este código en caja para usarla."
    )


def reward_redeemed_text(code: str, value) -> str:
    return (
        "✅ *Gift Card Canjeada*\n"
        "\n"
        f"Tu gift card *{code}* por ${value} fue canjeada. ¡Gracias por tu visita!"
    )


def points_assigned_text(tenant_name: str, points: int, total_points: int) -> str:
    return (
        "⭐ *Puntos Asignados*\n"
        "\n"
        f"Recibiste {points} puntos en *{tenant_name}*.\n"
        f"Tu saldo actual es de {total_points} puntos.\n"
        "\n"
        "Envía *PUNTOS* para ver tu balance completo."
    )
