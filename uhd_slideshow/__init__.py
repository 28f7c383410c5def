"""UHD photo canvas converter and slideshow builder."""

__all__ = ["convert_images", "convert_photo", "generate_slideshow"]


def convert_images(*args, **kwargs):
    from .converter import convert_images as _convert_images

    return _convert_images(*args, **kwargs)


def convert_photo(*args, **kwargs):
    from .compositor import convert_photo as _convert_photo

    return _convert_photo(*args, **kwargs)


def generate_slideshow(*args, **kwargs):
    from .slideshow import generate_slideshow as _generate_slideshow

    return _generate_slideshow(*args, **kwargs)
