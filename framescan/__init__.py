"""framescan: find the frames of a video that contain text, using OCR on sampled stills."""
