def canonicalize_drug_name(name: str) -> str:
    """Lowercase, then capitalize each whitespace-delimited word.

    "dupixent generic" and "DUPIXENT  Generic" both become "Dupixent Generic".
    """
    return " ".join(word.capitalize() for word in name.lower().split())
