"""
Integración con la API externa de catálogo de productos.

Este paquete solo habla HTTP: autentica y trae una página por llamada.
No reintenta (la política de reintentos vive en el Page Fetch Loop)
ni persiste nada.
"""
