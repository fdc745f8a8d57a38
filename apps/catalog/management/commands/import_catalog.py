import csv
import os
from decimal import Decimal, InvalidOperation
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from apps.catalog.models import Product


class Command(BaseCommand):
    help = 'Import products from CSV (columns: name, price, stock, description, images, slug)'

    def add_arguments(self, parser):
        parser.add_argument('file_path', type=str, help='Path to CSV file')

    def handle(self, *args, **kwargs):
        file_path = kwargs['file_path']
        if not os.path.exists(file_path):
            raise CommandError(f'File not found: {file_path}')

        created = updated = skipped = 0
        with open(file_path, 'r', encoding='utf-8') as f:
            reader = csv.DictReader(f)
            with transaction.atomic():
                for row in reader:
                    name = (row.get('name') or '').strip()
                    try:
                        price = Decimal((row.get('price') or '').strip())
                    except InvalidOperation:
                        price = None

                    if not name or price is None or price < 0:
                        skipped += 1
                        continue

                    images = [u.strip() for u in (row.get('images') or '').split('|') if u.strip()]
                    defaults = {
                        'price': price,
                        'stock': int(row.get('stock') or 0),
                        'description': (row.get('description') or '').strip(),
                        'images': images,
                        'is_active': True,
                        'is_deleted': False,
                    }

                    slug = (row.get('slug') or '').strip()
                    if slug:
                        _, was_created = Product.objects.update_or_create(
                            slug=slug, defaults={'name': name, **defaults}
                        )
                    else:
                        _, was_created = Product.objects.update_or_create(name=name, defaults=defaults)

                    if was_created:
                        created += 1
                    else:
                        updated += 1

        self.stdout.write(self.style.SUCCESS(
            f'Imported catalog: {created} created, {updated} updated, {skipped} skipped.'
        ))
