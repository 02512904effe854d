"""Submission image sideband store.

Images captured in a form are kept base64-encoded in the local-only
``SubmissionImagesClient`` entity set so a redisplayed form can load them.
The set is never uploaded and is emptied at every routine sync.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

# Standard library (alphabetical)
import asyncio
import re
from typing import TYPE_CHECKING, Any, Final

# Third-party (alphabetical)
import logfire

# Local imports (core first, then alphabetical)
from ..core.constants import (
    ACTION_IMAGE_CLIENT_CREATE,
    ACTION_IMAGE_CLIENT_UPDATE,
    COMPONENT_CLEAR_IMAGES,
    IMAGE_ENCODING,
    SUBMISSION_IMAGES_CLIENT,
)
from ..core.exceptions import ImageDataError
from ..core.models import ActionRequest, DataUrl, SubmissionImage
from ..core.query import ODataQuery, and_, entity_link, eq
from ..infra.instrumentation import operation_span

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ..core.protocols import ODataService, OfflineStore
    from .error_reporter import ErrorReporter

__all__ = ('SubmissionImageService', 'client_image_link', 'parse_data_url')

_DATA_URL: Final[re.Pattern[str]] = re.compile(
    r'data:(?P<mime>[\w/\-.]+);(?P<encoding>\w+),.+', re.MULTILINE | re.ASCII
)


def parse_data_url(url: str, *, image_id: str | None = None) -> DataUrl:
    """Split an image data URL into MIME type, encoding and payload.

    Raises:
        ImageDataError: If the MIME type or encoding cannot be determined, or
            the encoding is not base64.
    """
    match = _DATA_URL.search(url or '')
    if match is None or not match.group('mime'):
        raise ImageDataError('Unable to determine submission image MIME type', image_id=image_id)
    if not match.group('encoding'):
        raise ImageDataError('Unable to determine submission image encoding', image_id=image_id)
    encoding = match.group('encoding')
    if encoding != IMAGE_ENCODING:
        raise ImageDataError(
            f"Unexpected submission image encoding: '{encoding}'; expected '{IMAGE_ENCODING}'", image_id=image_id
        )
    payload = url[match.end('encoding') + 1 :]
    return DataUrl(mime=match.group('mime'), encoding=encoding, payload=payload)


def client_image_link(submission_id: str, image_id: str) -> str:
    """Read link of a ``SubmissionImagesClient`` row."""
    return entity_link(SUBMISSION_IMAGES_CLIENT, {'submissionId': submission_id, 'imageId': image_id})


class SubmissionImageService:
    """Creates, updates and clears client-side submission images."""

    def __init__(self, service: ODataService, reporter: ErrorReporter) -> None:
        self.service = service
        self.reporter = reporter

    async def upsert_images(
        self,
        submission_id: str,
        images: Sequence[SubmissionImage],
        error_context: dict[str, Any] | None = None,
    ) -> int:
        """Store each image, creating or updating its client row.

        Images are written one at a time in order. The first failure is
        reported and re-raised; images written before it stay written.

        Returns:
            Number of images written.
        """
        context = error_context if error_context is not None else {}
        context['component'] = f"{context.get('component', '')} Image Processing".strip()
        written = 0
        with logfire.span('images.upsert', submission_id=submission_id, count=len(images)):
            for image in images:
                context['imageId'] = image.id
                try:
                    query = ODataQuery().filter(and_(eq('submissionId', submission_id), eq('imageId', image.id)))
                    existing = await self.service.read(SUBMISSION_IMAGES_CLIENT, query)
                    is_create = not existing
                    context['component'] = f"MDK {'Create' if is_create else 'Update'} Submission Image"

                    parsed = parse_data_url(image.image, image_id=image.id)
                    properties = {
                        'contentType': parsed.mime,
                        'encoding': parsed.encoding,
                        'dataURL': image.image,
                    }
                    if is_create:
                        action = ActionRequest(
                            name=ACTION_IMAGE_CLIENT_CREATE,
                            kind='create',
                            entity_set=SUBMISSION_IMAGES_CLIENT,
                            properties={'submissionId': submission_id, 'imageId': image.id, **properties},
                        )
                    else:
                        action = ActionRequest(
                            name=ACTION_IMAGE_CLIENT_UPDATE,
                            kind='update',
                            entity_set=SUBMISSION_IMAGES_CLIENT,
                            read_link=client_image_link(submission_id, image.id),
                            properties=properties,
                        )
                    await self.service.execute(action)
                    written += 1
                except Exception as exc:
                    self.reporter.report(exc, dict(context))
                    raise
        return written

    async def clear_client_images(self, store: OfflineStore) -> int:
        """Undo every pending ``SubmissionImagesClient`` row.

        The undos run concurrently; a failure is reported and re-raised.

        Returns:
            Number of rows removed.
        """
        try:
            with operation_span('images.clear_client') as span:
                rows = await store.read(SUBMISSION_IMAGES_CLIENT)
                links = [row['@odata.editLink'] for row in rows if row.get('@odata.editLink')]
                await asyncio.gather(
                    *(store.undo_pending_changes(SUBMISSION_IMAGES_CLIENT, link) for link in links)
                )
                span.set_attribute('cleared', len(links))
                return len(links)
        except Exception as exc:
            self.reporter.report(exc, {'component': COMPONENT_CLEAR_IMAGES})
            raise
