"""PetVision AI: pet health screening from short videos via Gemini."""
