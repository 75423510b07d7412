import json


def write_character(character, file_path):
    """Writes the imported character record to a JSON file."""
    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(character, f, indent=2)
