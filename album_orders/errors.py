"""
Erreurs métier du service de commandes d'albums.

Les services lèvent ces exceptions; la couche HTTP (app_setup.exceptions)
les convertit en réponses JSON {"detail", "code", ...}. Le message ("message")
est toujours présentable au client; les détails techniques restent dans les logs.
"""
from typing import Any, Dict, Optional


class AlbumOrdersError(Exception):
    code = "error"
    status_code = 400
    default_message = "Requête invalide."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code}


# Messages par champ, affichés à côté du champ fautif côté client
SELECTION_MESSAGES = {
    "design": "Veuillez choisir un design.",
    "material": "Veuillez choisir un matériau.",
    "color": "Cette couleur n'est pas disponible pour ce matériau.",
    "size": "Cette taille n'est pas disponible pour ce matériau.",
    "engraving": "Option de gravure inconnue.",
    "engraving_not_allowed": "La gravure n'est pas disponible pour ce matériau.",
    "engraving_too_long": "Le texte de gravure dépasse la limite de caractères.",
}


class InvalidSelection(AlbumOrdersError):
    code = "invalid_selection"
    status_code = 422

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or SELECTION_MESSAGES.get(field, "Sélection invalide."))

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        return data


class NotFound(AlbumOrdersError):
    # NotFound et Forbidden partagent code, statut et message:
    # ne jamais révéler l'existence d'un article d'un autre panier
    code = "item_unavailable"
    status_code = 404
    default_message = "Vous ne pouvez pas modifier cet article."


class Forbidden(NotFound):
    pass


class InvalidState(AlbumOrdersError):
    code = "invalid_state"
    status_code = 409
    default_message = "Cet article ne peut plus être modifié."


class InvalidTransition(InvalidState):
    code = "invalid_transition"
    default_message = "Changement de statut non autorisé."


class EmptyCart(AlbumOrdersError):
    code = "empty_cart"
    status_code = 400
    default_message = "Votre panier est vide."


class PaymentNotConfirmed(AlbumOrdersError):
    code = "payment_not_confirmed"
    status_code = 402
    default_message = "Le paiement n'a pas abouti. Veuillez réessayer."


class GatewayError(AlbumOrdersError):
    """
    Erreur renvoyée par le prestataire de paiement.
    - kind: card_error, rate_limit, invalid_request, authentication_error, stripe_error, invalid_amount
    - message: message sûr pour le client
    - detail: message brut du prestataire (logs opérateur uniquement)
    """
    code = "gateway_error"
    status_code = 402
    default_message = "Le paiement a échoué."

    def __init__(self, kind: str, message: Optional[str] = None, detail: str = ""):
        self.kind = kind
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["kind"] = self.kind
        return data


class GatewayUnavailable(PaymentNotConfirmed):
    # Seule classe d'erreur de paiement que l'appelant peut rejouer telle quelle
    code = "gateway_unavailable"
    status_code = 503
    default_message = "Service de paiement indisponible. Veuillez réessayer dans un instant."


class InvalidWebhook(AlbumOrdersError):
    code = "invalid_webhook"
    status_code = 400
    default_message = "Invalid Stripe webhook payload"


class StorageUnavailable(AlbumOrdersError):
    code = "storage_unavailable"
    status_code = 503
    default_message = "Service momentanément indisponible."
