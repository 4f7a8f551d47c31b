"""
Simple CLI tool for managing the taxonomy
Provides CRUD operations for departments, categories and attributes
"""

import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.services.catalog import (
    CatalogDatabase,
    CategoryInput,
    AttributeInput,
    RecordNotFoundError,
)
from src.services.catalog.config import VALID_DATA_TYPES, OPTIONS_SEPARATOR


def print_header(text):
    """Print formatted header"""
    print("\n" + "=" * 60)
    print(f"  {text}")
    print("=" * 60)


def print_category(category, indent=""):
    parent = category.parent_category.name if category.parent_category else "-"
    print(
        f"{indent}[{category.id}] {category.name} "
        f"(department: {category.department.name if category.department else category.department_id}, parent: {parent})"
    )


def print_attribute(attribute):
    required = "required" if attribute.is_required else "optional"
    print(f"\n  [{attribute.id}] {attribute.name} ({attribute.data_type}, {required})")
    if attribute.option_values:
        print(f"  Options: {', '.join(attribute.option_values)}")


def ask_int(prompt, allow_empty=False):
    raw = input(prompt).strip()
    if not raw and allow_empty:
        return None
    try:
        return int(raw)
    except ValueError:
        print(f"\n'{raw}' is not a number.")
        return None


def list_taxonomy(db):
    """Print departments with their category tree"""
    print_header("TAXONOMY")

    departments = db.list_departments()
    if not departments:
        print("\nNo departments found.")
        return

    for department in departments:
        print(f"\n[{department.id}] {department.name}")
        for category in db.list_top_level_categories(department.id):
            print_category(category, indent="  ")
            for sub in db.list_subcategories(category.id):
                print_category(sub, indent="    ")


def create_department(db):
    print_header("CREATE DEPARTMENT")
    name = input("\nName: ").strip()
    department = db.create_department(name)
    print(f"\nDepartment '{department.name}' created with ID {department.id}")


def create_category(db):
    print_header("CREATE CATEGORY")
    name = input("\nName: ").strip()
    department_id = ask_int("Department ID: ")
    if department_id is None:
        return
    parent_id = ask_int("Parent category ID (press Enter for top-level): ", True)

    category = db.create_category(
        CategoryInput(
            name=name, department_id=department_id, parent_category_id=parent_id
        )
    )
    print(f"\nCategory '{category.name}' created with ID {category.id}")


def delete_category(db):
    print_header("DELETE CATEGORY")
    category_id = ask_int("\nCategory ID: ")
    if category_id is None:
        return

    category = db.get_category(category_id)
    if not category:
        print(f"\nCategory {category_id} not found.")
        return

    print_category(category)
    confirm = input("\nDelete this category? (yes/no): ").strip().lower()
    if confirm != "yes":
        print("\nCancelled.")
        return

    db.delete_category(category_id)
    print(f"\nCategory {category_id} deleted.")


def list_attributes(db):
    print_header("LIST ATTRIBUTES")
    category_id = ask_int("\nCategory ID: ")
    if category_id is None:
        return

    attributes = db.list_category_attributes(category_id)
    if not attributes:
        print("\nNo attributes found.")
        return
    for attribute in attributes:
        print_attribute(attribute)


def create_attribute(db):
    print_header("CREATE ATTRIBUTE")
    category_id = ask_int("\nCategory ID: ")
    if category_id is None:
        return
    name = input("Name: ").strip()
    data_type = (
        input(f"Data type ({'/'.join(VALID_DATA_TYPES)}, default text): ").strip()
        or "text"
    )
    is_required = input("Required? (yes/no): ").strip().lower() in ("yes", "y")
    options = []
    if data_type == "select":
        raw = input(f"Options (separated by '{OPTIONS_SEPARATOR}'): ")
        options = [o.strip() for o in raw.split(OPTIONS_SEPARATOR) if o.strip()]

    attribute = db.create_attribute(
        AttributeInput(
            name=name,
            data_type=data_type,
            is_required=is_required,
            category_id=category_id,
            options=options,
        )
    )
    print(f"\nAttribute '{attribute.name}' created with ID {attribute.id}")


def delete_attribute(db):
    print_header("DELETE ATTRIBUTE")
    attribute_id = ask_int("\nAttribute ID: ")
    if attribute_id is None:
        return

    confirm = input("Delete this attribute and its values? (yes/no): ").strip().lower()
    if confirm != "yes":
        print("\nCancelled.")
        return

    db.delete_attribute(attribute_id)
    print(f"\nAttribute {attribute_id} deleted.")


def show_statistics(db):
    print_header("CATALOG STATISTICS")
    stats = db.get_catalog_statistics()
    print(f"\nDepartments: {stats.total_departments}")
    print(f"Categories: {stats.total_categories}")
    print(f"Attributes: {stats.total_attributes}")
    print(f"Products: {stats.total_products}")


MENU = [
    ("List taxonomy", list_taxonomy),
    ("Create department", create_department),
    ("Create category", create_category),
    ("Delete category", delete_category),
    ("List category attributes", list_attributes),
    ("Create attribute", create_attribute),
    ("Delete attribute", delete_attribute),
    ("Show statistics", show_statistics),
]


def main_menu():
    """Display main menu and handle user input"""
    db = CatalogDatabase()
    db.create_schema()

    while True:
        print_header("TAXONOMY MANAGEMENT TOOL")
        for number, (label, _) in enumerate(MENU, start=1):
            print(f"{number}. {label}")
        exit_choice = str(len(MENU) + 1)
        print(f"{exit_choice}. Exit")

        choice = input(f"\nEnter choice (1-{exit_choice}): ").strip()

        if choice == exit_choice:
            print("\nGoodbye!")
            break

        if not choice.isdigit() or not 1 <= int(choice) <= len(MENU):
            print("\nInvalid choice. Please try again.")
            continue

        _, action = MENU[int(choice) - 1]
        try:
            action(db)
        except (ValueError, RecordNotFoundError) as e:
            print(f"\nError: {e}")

        input("\nPress Enter to continue...")


if __name__ == "__main__":
    try:
        main_menu()
    except KeyboardInterrupt:
        print("\n\nExiting...")
        sys.exit(0)
