"""
Sandbox image provisioning.
"""

from ..core.logging import get_logger
from .runtime import ContainerRuntime

logger = get_logger(__name__)


class ImageProvisioner:
    """Makes sure a profile's image exists locally before a run.

    Images are pulled only when the exact reference is missing. A local
    image with the same tag is never refreshed.
    """

    def __init__(self, runtime: ContainerRuntime):
        self.runtime = runtime

    def ensure(self, image: str) -> bool:
        """
        Ensure ``image`` is available locally.

        Returns:
            True if the image was pulled, False if it was already cached.

        Raises:
            RuntimeUnavailableError: if the runtime cannot be queried or
                the pull fails.
        """
        if image in self.runtime.list_images():
            logger.debug(f"Image {image} already present", extra={"context": {"image": image}})
            return False

        logger.info(f"Pulling image {image}", extra={"context": {"image": image}})
        self.runtime.pull_image(image)
        logger.info(f"Pulled image {image}", extra={"context": {"image": image}})
        return True
