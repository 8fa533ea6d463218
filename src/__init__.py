"""CogniGuide learning state engine."""
