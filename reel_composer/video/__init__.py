"""
Módulo de video para línea de tiempo, composición de frames y codificación.

Componentes:
- RenderTimeline: Estado puro de cada frame
- FrameComposer / CaptionPainter: Dibujo de imágenes y subtítulos
- CompositionRenderer: Máquina de estados del render
"""
