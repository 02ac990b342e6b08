"""
utils/constants.py

Purpose: Centralized static content

- All user-facing messages
- Mapping of ledger refusals to messages and HTTP status codes
- Sample catalogue used to seed an empty database

(Prevents hardcoding across the codebase)
"""

from app.models.ledger import LedgerError

# ============================================================
# AUTHENTICATION
# ============================================================

LOGIN_REQUIRED_MESSAGE = "Veuillez vous connecter"
ADMIN_REQUIRED_MESSAGE = "Accès administrateur requis"
MISSING_REGISTRATION_FIELDS_MESSAGE = "Tous les champs sont requis"
PASSWORD_TOO_SHORT_MESSAGE = "Mot de passe trop court"
EMAIL_TAKEN_MESSAGE = "Email déjà utilisé"
INVALID_EMAIL_MESSAGE = "Adresse email invalide"
MISSING_CREDENTIALS_MESSAGE = "Email et mot de passe requis"
INVALID_CREDENTIALS_MESSAGE = "Email ou mot de passe incorrect"
ACCOUNT_CREATED_MESSAGE = "Compte créé avec succès"
LOGIN_SUCCESS_MESSAGE = "Connexion réussie"
LOGOUT_MESSAGE = "Déconnecté"

# ============================================================
# CATALOGUE
# ============================================================

MISSING_DOCUMENT_FIELDS_MESSAGE = "Titre et auteur requis"
DOCUMENT_ADDED_MESSAGE = "Document ajouté"
DOCUMENT_RETURNED_MESSAGE = "Document retourné avec succès"
BORROW_SUCCESS_MESSAGE = "Document emprunté. Retour avant le {due_date}"
TOGGLE_DISABLED_MESSAGE = "La modification directe de disponibilité est désactivée"

DUE_DATE_FORMAT = "%d/%m/%Y"

# ============================================================
# LEDGER REFUSALS
# ============================================================

LEDGER_ERROR_MESSAGES = {
    LedgerError.USER_NOT_FOUND: "Utilisateur non trouvé",
    LedgerError.DOCUMENT_NOT_FOUND: "Document non trouvé",
    LedgerError.BORROW_LIMIT_EXCEEDED: "Limite d'emprunts atteinte ({limit})",
    LedgerError.DOCUMENT_UNAVAILABLE: "Document non disponible",
    LedgerError.NO_ACTIVE_LOAN: "Vous n'avez pas emprunté ce document",
}

LEDGER_ERROR_STATUS = {
    LedgerError.USER_NOT_FOUND: 404,
    LedgerError.DOCUMENT_NOT_FOUND: 404,
    LedgerError.BORROW_LIMIT_EXCEEDED: 400,
    LedgerError.DOCUMENT_UNAVAILABLE: 400,
    LedgerError.NO_ACTIVE_LOAN: 400,
}

# ============================================================
# SEED DATA
# ============================================================

DEFAULT_ADMIN_NAME = "Administrateur"
DEFAULT_USER_NAME = "Utilisateur Test"

SAMPLE_DOCUMENTS = [
    {
        "title": "Le Petit Prince",
        "author": "Antoine de Saint-Exupéry",
        "document_type": "Livre",
        "year": 1943,
        "borrow_count": 245,
    },
    {
        "title": "1984",
        "author": "George Orwell",
        "document_type": "Livre",
        "year": 1949,
        "borrow_count": 189,
    },
    {
        "title": "Harry Potter à l'école des sorciers",
        "author": "J.K. Rowling",
        "document_type": "Livre",
        "year": 1997,
        "borrow_count": 312,
    },
    {
        "title": "Introduction à MongoDB",
        "author": "NoSQL Expert",
        "document_type": "Livre technique",
        "year": 2023,
        "borrow_count": 78,
    },
    {
        "title": "Node.js pour les débutants",
        "author": "Développeur JS",
        "document_type": "Livre",
        "year": 2022,
        "borrow_count": 92,
    },
]
