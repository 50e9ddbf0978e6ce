"""
Bulk product import from CSV.

Columns: name, product_type, dimensions, weight, min_order_quantity, currency,
sale_unit, base_price, ton_price and optionally sheets_per_package, sale_type,
description, category, vat_rate. Unknown categories are created.
"""

import csv
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from apps.pricing.infrastructure.persistence.models import Product, ProductCategory

REQUIRED_COLUMNS = (
    "name",
    "product_type",
    "dimensions",
    "weight",
    "min_order_quantity",
    "currency",
    "sale_unit",
    "base_price",
    "ton_price",
)


class ProductCsvError(Exception):
    pass


def parse_product_rows(handle):
    """Yield (line_number, Product kwargs, category name) for each CSV row."""
    reader = csv.DictReader(handle)
    missing = [c for c in REQUIRED_COLUMNS if c not in (reader.fieldnames or [])]
    if missing:
        raise ProductCsvError(f"Missing columns: {', '.join(missing)}")

    for line, row in enumerate(reader, start=2):
        try:
            fields = {
                "name": _text(row, "name"),
                "product_type": _text(row, "product_type"),
                "dimensions": _text(row, "dimensions"),
                "weight": Decimal(_text(row, "weight")),
                "min_order_quantity": int(_text(row, "min_order_quantity") or 1),
                "currency": _text(row, "currency").upper(),
                "sale_unit": _text(row, "sale_unit").lower(),
                "base_price": Decimal(_text(row, "base_price") or "0"),
                "ton_price": Decimal(_text(row, "ton_price")),
                "sheets_per_package": int(_text(row, "sheets_per_package") or 1),
                "sale_type": _text(row, "sale_type"),
                "description": _text(row, "description"),
                "vat_rate": Decimal(_text(row, "vat_rate") or "20"),
            }
        except (InvalidOperation, ValueError) as e:
            raise ProductCsvError(f"Line {line}: {e}")
        yield line, fields, _text(row, "category")


def _text(row, column: str) -> str:
    """Cell value; short rows leave trailing cells as None."""
    return (row.get(column) or "").strip()


class Command(BaseCommand):
    help = 'Import catalogue products from a CSV file'

    def add_arguments(self, parser):
        parser.add_argument('csv_path', type=str, help='Path to the CSV file')
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Validate the file without saving anything'
        )

    def handle(self, **options):
        try:
            with open(options['csv_path'], newline='', encoding='utf-8-sig') as handle:
                rows = list(parse_product_rows(handle))
        except FileNotFoundError:
            raise CommandError(f'File not found: {options["csv_path"]}')
        except ProductCsvError as e:
            raise CommandError(str(e))

        created = 0
        with transaction.atomic():
            for line, fields, category_name in rows:
                if category_name:
                    fields["category"], _ = ProductCategory.objects.get_or_create(name=category_name)
                product = Product(**fields)
                try:
                    product.full_clean()
                except ValidationError as e:
                    raise CommandError(f'Line {line}: {e.message_dict}')
                product.save()
                created += 1

            if options['dry_run']:
                transaction.set_rollback(True)

        if options['dry_run']:
            self.stdout.write(self.style.SUCCESS(f'{created} row(s) valid; nothing saved (dry run)'))
        else:
            self.stdout.write(self.style.SUCCESS(f'Imported {created} product(s)'))
