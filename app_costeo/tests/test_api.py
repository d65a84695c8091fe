import pytest


def _datos(response):
    body = response.get_json()
    assert body['ok'] is True, body
    return body['data']


def test_flujo_compra_venta_por_api(client, catalogo):
    r = client.post('/api/compras', json={
        'producto_base_id': catalogo.harina.id,
        'cantidad': 10,
        'precio_unitario': 2.0,
        'estado_pago': 'EFECTIVO',
    })
    assert r.status_code == 201
    assert _datos(r)['cantidad_convertida'] == pytest.approx(10)

    r = client.post('/api/ventas', json={
        'plato_id': catalogo.pan.id,
        'servicio_id': catalogo.restaurante.id,
        'cantidad': 4,
    })
    assert r.status_code == 201
    venta = _datos(r)
    assert venta['importe_total'] == pytest.approx(20)
    assert venta['costo_total_transaccion'] == pytest.approx(8)

    inventario = _datos(client.get('/api/inventario'))
    assert inventario[0]['nombre_producto'] == 'Harina'
    assert inventario[0]['stock_actual'] == pytest.approx(6)
    assert client.get('/api/inventario').get_json()['valor_total'] == pytest.approx(12)


def test_inventario_insuficiente_devuelve_409(client, catalogo):
    r = client.post('/api/ventas', json={
        'plato_id': catalogo.pan.id,
        'servicio_id': catalogo.restaurante.id,
        'cantidad': 2,
    })
    assert r.status_code == 409
    body = r.get_json()
    assert body['ok'] is False
    assert body['code'] == 'INSUFFICIENT_INVENTORY'
    assert body['detalle']['faltantes'][0]['faltante'] == pytest.approx(2)


def test_errores_de_validacion_y_referencias(client, catalogo):
    r = client.post('/api/compras', json={'producto_base_id': catalogo.harina.id, 'cantidad': 0,
                                          'precio_unitario': 1})
    assert r.status_code == 400
    assert r.get_json()['code'] == 'INVALID_QUANTITY'

    r = client.get('/api/platos/no-existe/ficha-costo')
    assert r.status_code == 404
    assert r.get_json()['code'] == 'UNKNOWN_REFERENCE'

    r = client.get('/api/reportes/estado-cuenta?desde=2024-06-01')
    assert r.status_code == 400
    assert r.get_json()['detalle'] == {'faltan': ['hasta']}


def test_ruta_inexistente_responde_json(client):
    r = client.get('/api/nada')
    assert r.status_code == 404
    body = r.get_json()
    assert body['ok'] is False
    assert body['code'] == 'Not Found'


def test_cabeceras_de_seguridad(client):
    r = client.get('/api/configuracion')
    assert r.headers['X-Frame-Options'] == 'DENY'
    assert r.headers['X-Content-Type-Options'] == 'nosniff'


def test_cierres_por_api(client, container, catalogo):
    container.expense_service.registrar_gasto('Luz', 'Electricidad', 30, fecha='2024-05-10')

    r = client.post('/api/cierres/calcular', json={'mes': '2024-05', 'saldo_inicial_manual': 100})
    assert _datos(r)['saldo_final_mes'] == pytest.approx(70)
    assert _datos(client.get('/api/cierres')) == []

    r = client.post('/api/cierres', json={'mes': '2024-05', 'saldo_inicial_manual': 100})
    assert r.status_code == 201
    assert client.get('/api/cierres').get_json()['proximo_mes'] == '2024-06'

    r = client.post('/api/cierres', json={'mes': '2024-05'})
    assert r.status_code == 409
    assert r.get_json()['code'] == 'DUPLICATE_CLOSING'

    r = client.post('/api/gastos', json={'descripcion': 'Gas', 'categoria': 'Combustible',
                                         'importe': 5, 'fecha': '2024-05-11'})
    assert r.status_code == 409
    assert r.get_json()['code'] == 'PERIOD_CLOSED'

    r = client.delete('/api/cierres/ultimo')
    assert _datos(r)['mes'] == '2024-05'


def test_reportes_por_api(client, container, catalogo):
    container.purchase_service.registrar_compra(catalogo.harina.id, 5, 2.0, fecha='2024-06-01', estado='EFECTIVO')

    flujo = _datos(client.get('/api/reportes/flujo-efectivo?desde=2024-06-01&hasta=2024-06-30'))
    assert flujo['salidas_compras'] == pytest.approx(10)

    balance = _datos(client.get('/api/reportes/balance-general?mes=2024-06'))
    assert balance['inventario'] == pytest.approx(10)
    assert balance['total_activos'] == pytest.approx(balance['total_pasivos'] + balance['patrimonio'])

    ficha = _datos(client.get(f'/api/platos/{catalogo.pan.id}/ficha-costo'))
    assert ficha['costo_total_produccion_unitario'] == pytest.approx(2.0)

    reconstruido = _datos(client.get('/api/reportes/inventario-reconstruido'))
    assert reconstruido[0]['entradas'] == pytest.approx(5)


def test_catalogo_y_conversiones_por_api(client, catalogo):
    r = client.post('/api/unidades', json={'unidad_nombre': 'lb', 'id': 'lb'})
    assert r.status_code == 201
    r = client.post('/api/conversiones', json={'unidad_origen_id': 'lb', 'unidad_destino_id': 'g',
                                               'factor': 453.6})
    assert r.status_code == 201

    r = client.get('/api/conversiones/convertir?cantidad=2&origen=lb&destino=kg')
    assert r.get_json()['code'] == 'CONVERSION_NOT_FOUND'
    convertido = _datos(client.get('/api/conversiones/convertir?cantidad=2&origen=lb&destino=g'))
    assert convertido['cantidad'] == pytest.approx(907.2)

    r = client.post('/api/productos', json={'nombre_producto': 'Azucar', 'um_predeterminada': 'lb'})
    producto = _datos(r)
    r = client.delete(f"/api/productos/{producto['id']}")
    assert _datos(r) == {'cartas_modificadas': 0, 'transacciones': 0, 'conversiones': 0}


def test_exportar_importar_por_api(client, catalogo):
    exportado = _datos(client.get('/api/datos/exportar'))
    client.post('/api/platos', json={'nombre_plato': 'Sopa'})
    assert len(_datos(client.get('/api/platos'))) == 2

    conteo = _datos(client.post('/api/datos/importar', json=exportado))
    assert conteo['platos'] == 1
    assert [p['nombre_plato'] for p in _datos(client.get('/api/platos'))] == ['Pan']


def test_configuracion_por_api(client):
    assert _datos(client.get('/api/configuracion'))['comision_mandado_pct'] == pytest.approx(0.1)

    r = client.put('/api/configuracion', json={'comision_mandado_pct': 0.15, 'nombre_restaurante': 'Otro'})
    config = _datos(r)
    assert config['comision_mandado_pct'] == pytest.approx(0.15)
    assert config['comision_catauro_pct'] == pytest.approx(0.1)

    r = client.put('/api/configuracion', json={'comision_catauro_pct': 2})
    assert r.status_code == 400
    assert _datos(client.get('/api/configuracion'))['nombre_restaurante'] == 'Otro'
