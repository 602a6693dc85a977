"""Simple English inflection for relation and field names.

Rule based, tuned for snake_case table names. Irregular nouns are not
handled.
"""

_SIBILANT_ES_SUFFIXES = ("sses", "shes", "ches", "xes", "zes")


def singularize(name: str) -> str:
    """Singularize the last word of a snake_case name.

    ``categories`` -> ``category``, ``boxes`` -> ``box``, ``users`` -> ``user``.
    """
    if name.endswith("ies") and len(name) > 3:
        return name[:-3] + "y"
    if name.endswith(_SIBILANT_ES_SUFFIXES):
        return name[:-2]
    if name.endswith("ss"):
        return name
    if name.endswith("s") and len(name) > 1:
        return name[:-1]
    return name


def pluralize(name: str) -> str:
    """Pluralize the last word of a snake_case name.

    Names already ending in ``s`` are left untouched.
    """
    if name.endswith("y") and len(name) > 1 and name[-2] not in "aeiou":
        return name[:-1] + "ies"
    if name.endswith("s"):
        return name
    if name.endswith(("x", "z", "ch", "sh")):
        return name + "es"
    return name + "s"


def camelize(name: str) -> str:
    """Convert snake_case to PascalCase (``user_roles`` -> ``UserRoles``)."""
    parts = name.replace("-", "_").split("_")
    return "".join(part[:1].upper() + part[1:] for part in parts if part)


def class_name_for(table_name: str) -> str:
    """Class name for a relation: PascalCase of the singular form."""
    return camelize(singularize(table_name))
