"""Predefined rules loaded into a fresh rule store."""

from gastos.schemas.rule import Direction, MatchKind, Rule, RuleOrigin

SEED_PRIORITY = 10


def _seed(
    rule_id: str,
    name: str,
    pattern: str,
    category: str,
    subcategory: str | None,
    match_kind: MatchKind = MatchKind.CONTAINS,
    direction: Direction | None = None,
) -> Rule:
    return Rule(
        id=rule_id,
        name=name,
        pattern=pattern,
        match_kind=match_kind,
        category=category,
        subcategory=subcategory,
        priority=SEED_PRIORITY,
        active=True,
        direction=direction,
        origin=RuleOrigin.SEED,
    )


def default_rules() -> list[Rule]:
    """Return a fresh copy of the predefined rule set, in registration order."""
    return [
        _seed("mercadona", "Mercadona", "MERCADONA", "Alimentación", "Supermercado"),
        _seed("bizum-enviado", "Bizum Enviado", "BIZUM ENVIADO", "Bizum", "Enviado"),
        _seed("bizum-recibido", "Bizum Recibido", "BIZUM RECIBIDO", "Bizum", "Recibido"),
        _seed(
            "gasolineras",
            "Gasolineras",
            r"\b(REPSOL|BP|CEPSA|SHELL|PETRONOR)\b",
            "Transporte",
            "Gasolina",
            match_kind=MatchKind.REGEX,
        ),
        _seed("amazon", "Amazon", "AMAZON", "Compras Online", "Amazon"),
        _seed("carrefour", "Carrefour", "CARREFOUR", "Alimentación", "Supermercado"),
        _seed("dia", "Supermercados DIA", "SUPERMERCADOS DIA", "Alimentación", "Supermercado"),
        _seed("retirada-cajero", "Retirada Cajero", "RETIRADA CAJERO", "Efectivo", "Cajero"),
        _seed("transferencia", "Transferencia", "TRANSFERENCIA", "Transferencias", "Transferencia"),
        _seed("nomina", "Nómina", "NOMINA", "Ingresos", "Nómina", direction=Direction.INCOME),
        _seed("recibo", "Recibo", "RECIBO", "Gastos Fijos", "Recibo"),
        _seed("netflix", "Netflix", "NETFLIX", "Suscripciones", "Streaming"),
        _seed("spotify", "Spotify", "SPOTIFY", "Suscripciones", "Música"),
    ]
