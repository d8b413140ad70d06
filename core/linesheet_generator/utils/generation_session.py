import logging
import time
import traceback
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class GenerationSession:
    """
    Context manager to track one linesheet generation request.
    Tracks processed catalogs, per-product failures and missing images, and
    logs a one-line outcome on exit. Exceptions are never swallowed.
    """
    def __init__(self, company_name: str, output_type: str, catalog_count: int):
        self.company_name = company_name
        self.output_type = output_type
        self.catalog_count = catalog_count

        self.start_time = None
        self.catalogs_processed: List[str] = []
        self.catalogs_failed: List[str] = []
        self.product_failures: List[Dict[str, Any]] = []
        self.missing_images = 0
        self.formula_recovery_used = False

        self.status = "pending"
        self.error_message: Optional[str] = None
        self.error_traceback: Optional[str] = None

    def __enter__(self):
        self.start_time = time.time()
        logger.info(
            f"=== Linesheet Generation Started: {self.company_name} | "
            f"{self.output_type} | {self.catalog_count} catalog(s) ==="
        )
        return self

    def log_success(self, catalog_name: str, rows_written: int):
        self.catalogs_processed.append(catalog_name)
        logger.info(f"Catalog '{catalog_name}': {rows_written} product rows written")

    def log_failure(self, catalog_name: str, error: Exception = None):
        self.catalogs_failed.append(catalog_name)
        logger.error(f"Failed to process catalog '{catalog_name}': {error}")
        if error:
            logger.debug(traceback.format_exc())

    def log_product_failure(self, catalog_name: str, row: int, product_name: str, error: Exception):
        self.product_failures.append({
            "catalog": catalog_name,
            "row": row,
            "product": product_name,
            "error": str(error),
        })
        logger.warning(f"Product '{product_name}' (row {row}, '{catalog_name}') skipped: {error}")

    def log_missing_image(self, product_name: str, image_ref: str):
        self.missing_images += 1
        logger.info(f"No image embedded for '{product_name}' ({image_ref})")

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time

        if exc_type:
            self.status = "fatal"
            self.error_message = str(exc_val)
            self.error_traceback = "".join(traceback.format_exception(exc_type, exc_val, exc_tb))
            logger.critical(f"Generation crashed: {self.error_message}")
        elif self.catalogs_failed or self.product_failures:
            self.status = "partial_success"
        else:
            self.status = "success"

        logger.info(
            f"=== Linesheet Generation Ended ({self.status}) | Duration: {duration:.2f}s | "
            f"products skipped: {len(self.product_failures)} | images missing: {self.missing_images} ==="
        )

        # Propagate exceptions
        return False

    def get_summary(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "catalogs_processed": self.catalogs_processed,
            "catalogs_failed": self.catalogs_failed,
            "product_failures": self.product_failures,
            "missing_images": self.missing_images,
            "formula_recovery_used": self.formula_recovery_used,
            "error_message": self.error_message,
        }
