"""User-facing messages.

Keys are stable and meant to be translated by the caller; the English text is
the default shown when no translation exists.
"""

MESSAGES = {
    "youAreNotRegistered": "You are not registered. Please register first.",
    "noRegistrationFoundAfterAttempts": (
        "No registration found for this Player ID after several attempts. "
        "Please register with the promo code and try again."
    ),
    "invalidPlayerIdError": "Invalid Player ID.",
    "serverErrorError": "Server error. Please try again later.",
    "loginFailedNoCount": "Login failed: no prediction count was returned.",
    "unknownErrorError": "An unknown error occurred.",
    "pleaseEnterPlayerId": "Please enter your Player ID.",
    "needsDeposit": "A deposit is required to use the predictor.",
    "needsRedeposit": "A new deposit is required to continue using the predictor.",
    "couldNotUsePrediction": "Could not use a prediction.",
    "limitReached": "You have used all your predictions. Make a deposit to get more.",
    "registrationLinkNotAvailable": "Registration link is not available right now.",
    "depositLinkNotAvailable": "Deposit link is not available right now.",
    "unexpectedErrorOccurred": "An unexpected error occurred.",
    "sessionNotFound": "Session not found. Please log in again.",
    "roundAlreadyInProgress": "A round is already in progress.",
    "roundNotComplete": "The current round is not complete.",
    "adminNotConfigured": "Admin access is not configured on the server.",
    "incorrectAdminPassword": "Incorrect admin password.",
    "passwordRequired": "Please enter the admin password.",
    "promoCodeTooShort": "Promo code must be at least 3 characters long.",
    "promoCodeSaveFailed": "Internal Server Error while saving promo code.",
    "promoCodeReadFailed": "Failed to retrieve promo code from server.",
}


def message_text(key: str) -> str:
    return MESSAGES.get(key, MESSAGES["unknownErrorError"])
