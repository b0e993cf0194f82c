"""Flask CLI commands for operator tasks."""
import click


def register_cli(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        from catalog.extensions import db

        db.create_all()
        click.echo("Database initialized.")

    @app.cli.command("create-product")
    @click.option("--title", required=True)
    @click.option("--price", type=int, default=None, help="Base price in cents")
    def create_product(title, price):
        """Create a product directly (for testing)."""
        from catalog.models.product import Product
        from catalog.extensions import db

        product = Product(title=title, price_cents=price)
        db.session.add(product)
        db.session.commit()
        click.echo(f"Created product {product.id}: {title}")

    @app.cli.command("seed-demo")
    def seed_demo():
        """Seed a demo product with Size and Color options (idempotent)."""
        from catalog.models.product import Product
        from catalog.extensions import db
        from catalog.services import variant_store

        if Product.query.filter_by(title="Demo T-Shirt").first():
            click.echo("Demo product already exists — skipping.")
            return

        product = Product(title="Demo T-Shirt", price_cents=4990)
        db.session.add(product)
        db.session.commit()

        for name, values in (("Size", ["S", "M", "L"]), ("Color", ["Red", "Blue"])):
            option = variant_store.create_option(product.id, name)
            for value in values:
                variant_store.create_option_value(option.id, value)
        click.echo(f"Seeded demo product {product.id} with 6 combinations.")

    @app.cli.command("variants")
    @click.argument("product_id", type=int)
    def show_variants(product_id):
        """Print the variant matrix of a product."""
        from catalog.services import variant_service, variant_store

        if not variant_store.get_product(product_id):
            raise click.ClickException(f"Product {product_id} not found.")

        matrix = variant_service.build_matrix(product_id)
        if matrix.over_limit:
            click.echo(
                f"{matrix.combination_count} combinations exceed the limit of "
                f"{matrix.limit}; not listing."
            )
            return
        for item in matrix.reconciled:
            if not item.is_matched:
                state = "not generated"
            elif item.is_available:
                state = f"variant {item.variant.id}, available"
            else:
                state = f"variant {item.variant.id}, unavailable"
            click.echo(f"  {item.label}: {state}")
        click.echo(
            f"Total: {matrix.combination_count}  matched: {matrix.matched_count}  "
            f"available: {matrix.available_count}  orphaned: {len(matrix.orphans)}"
        )
        for warning in matrix.warnings:
            click.echo(f"  warning: {warning.message}")

    @app.cli.command("generate-variants")
    @click.argument("product_id", type=int)
    def generate_variants(product_id):
        """Create variants for every combination that has none."""
        from catalog.services import variant_service, variant_store

        if not variant_store.get_product(product_id):
            raise click.ClickException(f"Product {product_id} not found.")
        try:
            result = variant_service.generate_variants(product_id, operator_id="cli")
        except (variant_service.CombinationLimitError, variant_service.BatchInProgressError) as e:
            raise click.ClickException(str(e))

        click.echo(f"Variants generated: {result.notice}")
        for label, error in result.failed:
            click.echo(f"  failed: {label} ({error})")

    @app.cli.command("purge-orphans")
    @click.argument("product_id", type=int)
    def purge_orphans(product_id):
        """Delete variants whose options or values no longer exist."""
        from catalog.services import variant_service, variant_store

        if not variant_store.get_product(product_id):
            raise click.ClickException(f"Product {product_id} not found.")
        result = variant_service.purge_orphans(product_id, operator_id="cli")
        click.echo(f"Orphaned variants removed: {result.notice}")
