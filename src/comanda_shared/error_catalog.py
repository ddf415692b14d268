"""
Catálogo centralizado das mensagens exibidas ao usuário (pt-BR).

Cada intenção da loja de estado usa uma entrada de sucesso e uma de erro; a
camada web devolve o texto ao navegador, que o mostra como toast.
"""

MESSAGES = {
    "table_added": "Mesa {numero} adicionada com sucesso!",
    "table_exists": "Mesa {numero} já existe!",
    "table_add_failed": "Erro ao adicionar mesa",
    "table_occupied": "Mesa ocupada com sucesso!",
    "table_occupy_failed": "Erro ao ocupar mesa",
    "table_released": "Mesa liberada com sucesso!",
    "table_release_failed": "Erro ao liberar mesa",
    "payment_requested": "Pagamento solicitado para a mesa!",
    "payment_request_failed": "Erro ao solicitar pagamento",
    "table_deleted": "Mesa excluída com sucesso!",
    "table_delete_failed": "Erro ao excluir mesa",
    "table_delete_occupied": "Não é possível excluir uma mesa ocupada",
    "order_created": "Comanda criada com sucesso!",
    "order_create_failed": "Erro ao criar comanda",
    "item_added": "Item adicionado à comanda!",
    "item_add_failed": "Erro ao adicionar item",
    "item_removed": "Item removido da comanda!",
    "item_remove_failed": "Erro ao remover item",
    "item_status_updated": "Status do item atualizado para {status}!",
    "item_status_failed": "Erro ao atualizar status do item",
    "payment_finalized": "Pagamento finalizado com sucesso!",
    "payment_failed": "Erro ao processar pagamento",
    "product_created": "Produto criado com sucesso!",
    "product_create_failed": "Erro ao criar produto",
    "product_updated": "Produto atualizado com sucesso!",
    "product_update_failed": "Erro ao atualizar produto",
    "product_deleted": "Produto excluído com sucesso!",
    "product_delete_failed": "Erro ao excluir produto",
    "restaurant_updated": "Dados do restaurante atualizados!",
    "restaurant_update_failed": "Erro ao atualizar restaurante",
    "refresh_failed": "Erro ao carregar dados do restaurante",
    "restaurant_not_loaded": "Dados do restaurante ainda não foram carregados",
    "cmv_saved": "CMV salvo com sucesso!",
    "cmv_failed": "Erro ao salvar CMV",
    "cash_register_opened": "Caixa aberto com sucesso!",
    "cash_register_closed": "Caixa fechado com sucesso!",
    "cash_movement_added": "Movimentação registrada!",
    "connection_error": "Erro de conexão. Verifique sua internet e tente novamente.",
    "auth_required": "Autenticação necessária",
    "admin_required": "Permissão de administrador necessária",
    "invalid_data": "Dados inválidos",
    "not_found": "Recurso não encontrado",
    "internal_error": "Erro interno do servidor",
    "database_error": "Erro ao comunicar com o banco de dados",
}


def message(key: str, **params) -> str:
    """Format a catalog entry, falling back to the key itself."""
    template = MESSAGES.get(key, key)
    try:
        return template.format(**params)
    except (KeyError, IndexError):
        return template
