"""
Static registries: the Data Identifier catalog and the document-type table.

Both are read-only and shared by every parse. Nothing in here is mutated
after import.

Reference: Spécifications Techniques 2D-DOC v3.3.4 (ANTS/France Titres)
"""

from types import MappingProxyType

from twoddoc.models import FieldDefinition


def _var(name: str, field_type: str = "string", max_length: int | None = 38) -> FieldDefinition:
    return FieldDefinition(name, field_type, "variable", max_length=max_length)


def _fixed(name: str, length: int, field_type: str = "string") -> FieldDefinition:
    return FieldDefinition(name, field_type, "fixed", length=length)


# =============================================================================
# DATA IDENTIFIER (DI) CATALOG
# =============================================================================

# Fixed length fields are read by size and need no GS after them.
# Variable length fields stop at GS, RS or their max length.
FIELD_CATALOG: MappingProxyType = MappingProxyType({
    # === Justificatif de domicile: beneficiary ===
    "10": _var("Ligne 1 adresse postale bénéficiaire"),
    "11": _var("Qualité/titre du bénéficiaire"),
    "12": _var("Prénom du bénéficiaire"),
    "13": _var("Nom du bénéficiaire"),

    # === Invoice recipient ===
    "14": _var("Qualité + Nom + Prénom du destinataire facture"),
    "15": _var("Qualité/titre destinataire facture"),
    "16": _var("Prénom destinataire facture"),
    "17": _var("Nom destinataire facture"),

    # === Invoice details ===
    "18": _var("Numéro de facture", max_length=None),
    "19": _var("Numéro de client", max_length=50),
    "1A": _var("Numéro de contrat", max_length=50),
    "1B": _var("Identifiant souscripteur", max_length=50),
    "1C": _fixed("Date d'effet du contrat", 8, "formatted_date"),
    "1D": _var("Montant TTC", "amount", max_length=16),
    "1E": _var("Téléphone du bénéficiaire", "phone", max_length=30),
    "1F": _var("Téléphone destinataire", "phone", max_length=30),

    # === Service address ===
    "20": _var("Ligne 2 adresse point de service"),
    "22": _var("Numéro et nom de voie bénéficiaire"),
    "24": _fixed("Code postal point de service", 5),
    "25": _var("Localité point de service", max_length=32),
    "26": _fixed("Pays point de service", 2),

    # === Recipient address ===
    "27": _var("Ligne 2 adresse destinataire"),
    "28": _var("Ligne 3 adresse destinataire"),
    "29": _var("Ligne 4 adresse destinataire"),
    "2A": _var("Ligne 5 adresse destinataire"),
    "2B": _fixed("Code postal destinataire", 5),
    "2C": _var("Localité destinataire", max_length=32),
    "2D": _fixed("Pays destinataire", 2),

    # === Tax notice ===
    "41": _var("Revenu fiscal de référence", "amount", max_length=12),
    "43": _var("Nombre de parts", "integer", max_length=5),
    "44": _fixed("Référence de l'avis d'impôt", 13),
    "45": _fixed("Année fiscale", 4, "year"),
    "46": _var("Nom du Déclarant 1"),
    "47": _fixed("Numéro fiscal du Déclarant 1", 13),
    "48": _var("Nom du Déclarant 2"),
    "49": _fixed("Numéro fiscal du Déclarant 2", 13),
    "4A": _fixed("Date limite de paiement", 8, "formatted_date"),
    "4V": _var("Impôt sur le revenu net", "amount", max_length=10),
    "4W": _var("Montant restant à payer", "amount", max_length=10),
    "4X": _var("Montant prélevé à la source", "amount", max_length=10),

    # === Identity documents ===
    "60": _var("Prénoms", max_length=20),
    "62": _var("Nom", max_length=20),
    "65": _fixed("Type de pièce d'identité", 2),
    "66": _var("Numéro de pièce d'identité", max_length=20),
    "67": _fixed("Pays de délivrance", 2),
    "68": _fixed("Sexe", 1),
    "69": _fixed("Date de naissance", 8, "formatted_date"),
    "6C": _fixed("Pays de naissance", 2),
})


def get_field_definition(field_id: str) -> FieldDefinition | None:
    """Look up a DI in the catalog. Returns None for unknown DIs."""
    return FIELD_CATALOG.get(field_id)


# =============================================================================
# DOCUMENT TYPES
# =============================================================================

# Unknown documents resolve to this category and are rejected by the parser
UNKNOWN_CATEGORY = "INCONNU"

# perimeter -> document type -> {name, category}
DOCUMENT_TYPES: MappingProxyType = MappingProxyType({
    # ANTS perimeter
    "01": {
        "01": {"name": "Justificatif de Domicile", "category": "Justificatif"},
        "04": {"name": "Avis d'impôt sur les Revenus", "category": "IMPOTS"},
        "07": {"name": "Carte d'identité", "category": "IDENTITE"},
    },
    "JD": {
        "01": {"name": "Facture d'électricité", "category": "RESIDENCE"},
        "02": {"name": "Facture de gaz", "category": "RESIDENCE"},
        "03": {"name": "Facture d'eau", "category": "RESIDENCE"},
        "04": {"name": "Facture de téléphonie", "category": "RESIDENCE"},
        "05": {"name": "Facture d'internet", "category": "RESIDENCE"},
        "06": {"name": "Quittance de loyer", "category": "RESIDENCE"},
        "07": {"name": "Avis d'imposition", "category": "RESIDENCE"},
        "08": {"name": "Attestation d'assurance logement", "category": "RESIDENCE"},
    },
    "ID": {
        "01": {"name": "Carte Nationale d'Identité", "category": "IDENTITE"},
        "02": {"name": "Passeport", "category": "IDENTITE"},
        "03": {"name": "Titre de séjour", "category": "IDENTITE"},
        "04": {"name": "Permis de conduire", "category": "IDENTITE"},
    },
    "SN": {
        "L1": {"name": "Attestation vaccinale", "category": "SANTE"},
        "L2": {"name": "Certificat de test", "category": "SANTE"},
        "L3": {"name": "Certificat de rétablissement", "category": "SANTE"},
    },
    "FI": {
        "01": {"name": "Avis d'impôt sur le revenu", "category": "IMPOTS"},
        "02": {"name": "Avis de taxe d'habitation", "category": "IMPOTS"},
        "03": {"name": "Avis de taxe foncière", "category": "IMPOTS"},
        "04": {"name": "Déclaration de revenus", "category": "IMPOTS"},
    },
})


def get_document_type(perimeter_id: str | None, doc_type_id: str | None) -> dict:
    """
    Resolve a (perimeter, document type) pair.

    Args:
        perimeter_id: 2-char perimeter code (e.g. "ID")
        doc_type_id: 2-char document type code (e.g. "01")

    Returns:
        {"name": ..., "category": ...}. Unknown pairs get category "INCONNU".

    Example:
        >>> get_document_type("ID", "01")["category"]
        'IDENTITE'
    """
    doc_type = DOCUMENT_TYPES.get(perimeter_id, {}).get(doc_type_id)
    if doc_type:
        return dict(doc_type)
    return {
        "name": f"Type inconnu (Périmètre: {perimeter_id}, Type: {doc_type_id})",
        "category": UNKNOWN_CATEGORY,
    }


def is_supported_document(perimeter_id: str | None, doc_type_id: str | None) -> bool:
    return get_document_type(perimeter_id, doc_type_id)["category"] != UNKNOWN_CATEGORY
